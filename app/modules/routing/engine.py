"""Rule-based ticket routing.

Every active rule is scored against the ticket: all of a rule's conditions
must match (a single zero zeroes the rule), matched condition scores are
summed, and the sum is scaled by the rule's historical accuracy. The best
scoring rule becomes the suggestion; the next two are offered as
alternatives.
"""
import logging
import time
import uuid
from typing import Callable, Sequence

from app.core.cache import TTLCache
from app.modules.routing.schemas import (
    AlternativeTeam, RoutingCondition, RoutingFeedback, RoutingResult, RoutingRule, TicketSnapshot,
)
from app.modules.routing.matching import match_field, match_keywords
from app.modules.routing.sentiment import FixedSentimentScorer
from app.platform.ports.routing import FeedbackSinkPort, RuleSourcePort, SentimentScorerPort

log = logging.getLogger("routing.engine")

RULES_CACHE_KEY = "active-rules"
KEYWORD_SCORE = 0.8
FIELD_SCORE = 1.0

def feedback_adjustment(feedback: Sequence[RoutingFeedback]) -> float:
    """Accuracy-based adjustment in [-0.3, +0.3]; 0 without history."""
    if not feedback:
        return 0.0
    correct = sum(1 for f in feedback if f.was_correct)
    accuracy = correct / len(feedback)
    return accuracy * 0.6 - 0.3

class RoutingEngine:
    def __init__(
        self,
        rules: RuleSourcePort,
        feedback_sink: FeedbackSinkPort,
        sentiment: SentimentScorerPort | None = None,
        cache_ttl_seconds: float = 300.0,
        catch_all_score: float = 0.01,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rules = rules
        self.feedback_sink = feedback_sink
        self.sentiment = sentiment or FixedSentimentScorer()
        self.catch_all_score = catch_all_score
        self._cache: TTLCache[str, list[RoutingRule]] = TTLCache(cache_ttl_seconds, clock=clock)

    # ---- Routing ----
    async def route_ticket(self, ticket: TicketSnapshot, content: str) -> RoutingResult:
        try:
            rules = await self._load_rules()

            evaluations: list[tuple[RoutingRule, float]] = []
            for rule in rules:
                score = self.evaluate_rule(rule, ticket, content)
                if score > 0:
                    evaluations.append((rule, score))

            # stable: equal scores keep the store's priority order
            evaluations.sort(key=lambda e: e[1], reverse=True)

            if not evaluations:
                return self._default_routing()

            top_rule, top_score = evaluations[0]
            result = self._build_result(top_rule, top_score)
            result.alternative_options = [
                AlternativeTeam(team_id=(r.action.target_id if r.action and r.action.target_id else "unassigned"), score=s)
                for r, s in evaluations[1:3]
            ]
            log.debug(f"Ticket {ticket.id or '-'} routed by rule {top_rule.id} (score={top_score:.2f})")
            return result
        except Exception as e:
            log.exception("Routing failed; falling back to default routing")
            return self._default_routing(failure_reason=f"{type(e).__name__}: {e}")

    def evaluate_rule(self, rule: RoutingRule, ticket: TicketSnapshot, content: str) -> float:
        if not rule.is_active:
            return 0.0

        if not rule.conditions:
            # vacuously true; ranks below any rule with a real match
            score = self.catch_all_score
        else:
            score = 0.0
            for condition in rule.conditions:
                cond_score = self.evaluate_condition(condition, ticket, content)
                if cond_score == 0:
                    return 0.0
                score += cond_score

        if rule.feedback:
            score *= 1 + feedback_adjustment(rule.feedback)
        return score

    def evaluate_condition(self, condition: RoutingCondition, ticket: TicketSnapshot, content: str) -> float:
        field, operator, value = condition.field, condition.operator, condition.value

        if field == "category":
            return FIELD_SCORE if match_field(ticket.category, value, operator) else 0.0
        if field == "subcategory":
            return FIELD_SCORE if match_field(ticket.subcategory, value, operator) else 0.0
        if field == "priority":
            return FIELD_SCORE if match_field(ticket.priority, value, operator) else 0.0
        if field == "studio":
            return FIELD_SCORE if match_field(ticket.studio_id, value, operator) else 0.0
        if field == "keywords":
            return KEYWORD_SCORE if match_keywords(content, value) else 0.0
        if field == "sentiment":
            return self.sentiment.score(condition, ticket, content)
        return 0.0

    def _build_result(self, rule: RoutingRule, score: float) -> RoutingResult:
        confidence = min(score * 100, 100.0)
        team_id = user_id = None
        action = rule.action
        if action is not None:
            if action.type == "assignUser":
                user_id = action.target_id
                team_id = (action.metadata or {}).get("team_id")
            else:
                team_id = action.target_id

        return RoutingResult(
            suggested_team_id=team_id,
            suggested_user_id=user_id,
            confidence=confidence,
            rule_id=rule.id,
            reasoning=f'Matched rule "{rule.name}" with {confidence:.0f}% confidence',
        )

    def _default_routing(self, failure_reason: str | None = None) -> RoutingResult:
        # caller falls back to assignment within the ticket's team
        return RoutingResult(
            confidence=0,
            reasoning="No specific routing rule matched. Using default assignment.",
            outcome="error" if failure_reason else "no_match",
            failure_reason=failure_reason,
        )

    # ---- Rule cache ----
    async def _load_rules(self) -> list[RoutingRule]:
        cached = self._cache.get(RULES_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            rules = await self.rules.load_active_rules()
        except Exception:
            stale = self._cache.peek(RULES_CACHE_KEY)
            if stale is None:
                raise
            log.warning("Rule source failed; serving the previous rule snapshot", exc_info=True)
            return stale

        self._cache.set(RULES_CACHE_KEY, list(rules))
        log.debug(f"Loaded {len(rules)} active routing rules")
        return rules

    def clear_cache(self) -> None:
        self._cache.clear()

    # ---- Feedback ----
    async def record_feedback(
        self,
        rule_id: str,
        ticket_id: str,
        was_correct: bool,
        actual_team_id: str | None = None,
    ) -> RoutingFeedback | None:
        feedback = RoutingFeedback(
            id=f"fb-{uuid.uuid4().hex[:12]}",
            rule_id=rule_id,
            ticket_id=ticket_id,
            was_correct=was_correct,
            actual_team_id=actual_team_id,
            score=1.0 if was_correct else 0.0,
        )
        try:
            stored = await self.feedback_sink.append_feedback(feedback)
        except Exception:
            log.exception(f"Error recording feedback for rule {rule_id}")
            return None

        if stored is None:
            log.warning(f"Feedback for unknown rule {rule_id} was dropped")
            return None

        log.info(f"Recorded feedback: rule={rule_id} ticket={ticket_id} correct={was_correct}")
        # next routing decision must see the new accuracy
        self.clear_cache()
        return stored
