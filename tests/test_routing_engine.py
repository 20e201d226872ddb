"""Tests for rule evaluation and routing decisions."""

import pytest

from app.modules.routing.engine import RoutingEngine, feedback_adjustment
from app.modules.routing.rules import RulesManager
from app.modules.routing.schemas import RoutingFeedback, RoutingRule, TicketSnapshot
from app.modules.routing.sentiment import FixedSentimentScorer, TicketFieldSentimentScorer

from conftest import make_rule


def _feedback(rule_id: str, *correct: bool) -> list[RoutingFeedback]:
    return [
        RoutingFeedback(id=f"fb-{i}", rule_id=rule_id, ticket_id=f"t-{i}", was_correct=c, score=float(c))
        for i, c in enumerate(correct)
    ]


class CountingSource:
    """Rule source that counts loads and can be told to fail."""

    def __init__(self, rules: list[RoutingRule]):
        self.rules = rules
        self.loads = 0
        self.fail = False

    async def load_active_rules(self) -> list[RoutingRule]:
        self.loads += 1
        if self.fail:
            raise RuntimeError("rule store unreachable")
        return [r for r in self.rules if r.is_active]


def _engine(rules: list[RoutingRule], clock=None, **kwargs) -> tuple[RoutingEngine, RulesManager]:
    manager = RulesManager(rules)
    if clock is not None:
        kwargs["clock"] = clock
    return RoutingEngine(manager, manager, **kwargs), manager


class TestEvaluateRule:
    def test_and_semantics(self):
        rule = make_rule("r1", [("category", "equals", "billing"), ("priority", "equals", "high")], "team-a")
        engine, _ = _engine([rule])
        ticket = TicketSnapshot(category="billing", priority="low")
        assert engine.evaluate_rule(rule, ticket, "") == 0

    def test_scores_are_summed(self):
        rule = make_rule(
            "r1",
            [("category", "equals", "billing"), ("keywords", "contains", ["refund"])],
            "team-a",
        )
        engine, _ = _engine([rule])
        ticket = TicketSnapshot(category="billing")
        assert engine.evaluate_rule(rule, ticket, "I want a refund") == pytest.approx(1.8)

    def test_inactive_rule_scores_zero(self):
        rule = make_rule("r1", [("priority", "equals", "critical")], "team-a", is_active=False)
        engine, _ = _engine([])
        assert engine.evaluate_rule(rule, TicketSnapshot(priority="critical"), "") == 0

    def test_studio_field_reads_studio_id(self):
        rule = make_rule("r1", [("studio", "in", ["studio-1", "studio-2"])], "team-a")
        engine, _ = _engine([])
        assert engine.evaluate_rule(rule, TicketSnapshot(studio_id="studio-2"), "") == 1

    def test_fixed_sentiment_score(self):
        rule = make_rule("r1", [("sentiment", "equals", "negative")], "team-a")
        engine, _ = _engine([], sentiment=FixedSentimentScorer(0.5))
        assert engine.evaluate_rule(rule, TicketSnapshot(), "") == 0.5

    def test_ticket_field_sentiment(self):
        rule = make_rule("r1", [("sentiment", "equals", "negative")], "team-a")
        engine, _ = _engine([], sentiment=TicketFieldSentimentScorer())
        assert engine.evaluate_rule(rule, TicketSnapshot(sentiment="negative"), "") == 1
        assert engine.evaluate_rule(rule, TicketSnapshot(sentiment="positive"), "") == 0

    def test_rule_without_conditions_is_catch_all(self):
        rule = make_rule("fallback", [], action_type="autoAssign", priority=1)
        engine, _ = _engine([], catch_all_score=0.01)
        assert engine.evaluate_rule(rule, TicketSnapshot(), "") == pytest.approx(0.01)


class TestFeedbackAdjustment:
    def test_no_history(self):
        assert feedback_adjustment([]) == 0

    @pytest.mark.parametrize(
        "history, multiplier",
        [
            ((True, True, True), 1.3),
            ((False, False), 0.7),
            ((True, False), 1.0),
            ((True, True, False), 1.1),
        ],
    )
    def test_multiplier_bounds(self, history, multiplier):
        adj = feedback_adjustment(_feedback("r1", *history))
        assert 1 + adj == pytest.approx(multiplier)
        assert 0.7 <= 1 + adj <= 1.3

    def test_poor_accuracy_suppresses_rule(self):
        rule = make_rule(
            "r1", [("priority", "equals", "high")], "team-a", feedback=_feedback("r1", False, False, False)
        )
        engine, _ = _engine([])
        assert engine.evaluate_rule(rule, TicketSnapshot(priority="high"), "") == pytest.approx(0.7)


class TestRouteTicket:
    @pytest.mark.asyncio
    async def test_critical_priority_goes_to_senior_support(self):
        rule = make_rule("rule-critical", [("priority", "equals", "critical")], "team-senior-support", priority=100)
        engine, _ = _engine([rule])

        result = await engine.route_ticket(TicketSnapshot(priority="critical"), "")

        assert result.suggested_team_id == "team-senior-support"
        assert result.confidence == 100
        assert result.rule_id == "rule-critical"
        assert result.outcome == "matched"
        assert "rule-critical" in result.reasoning
        assert result.alternative_options == []

    @pytest.mark.asyncio
    async def test_confidence_is_capped(self):
        rule = make_rule(
            "r1",
            [
                ("category", "equals", "billing"),
                ("priority", "equals", "high"),
                ("studio", "equals", "studio-1"),
                ("keywords", "contains", ["refund"]),
            ],
            "team-accounting",
            feedback=_feedback("r1", True, True),
        )
        engine, _ = _engine([rule])
        ticket = TicketSnapshot(category="billing", priority="high", studio_id="studio-1")

        result = await engine.route_ticket(ticket, "refund my membership")

        assert result.confidence == 100

    @pytest.mark.asyncio
    async def test_empty_rule_set_uses_default_routing(self):
        engine, _ = _engine([])
        result = await engine.route_ticket(TicketSnapshot(priority="critical"), "")
        assert result.suggested_team_id is None
        assert result.suggested_user_id is None
        assert result.confidence == 0
        assert result.outcome == "no_match"
        assert result.failure_reason is None

    @pytest.mark.asyncio
    async def test_all_inactive_rules_use_default_routing(self):
        rules = [
            make_rule("r1", [("priority", "equals", "critical")], "team-a", is_active=False),
            make_rule("r2", [], action_type="autoAssign", is_active=False),
        ]
        engine, _ = _engine(rules)
        result = await engine.route_ticket(TicketSnapshot(priority="critical"), "")
        assert result.confidence == 0
        assert result.suggested_team_id is None

    @pytest.mark.asyncio
    async def test_best_score_wins_and_runners_up_are_alternatives(self):
        rules = [
            make_rule("kw", [("keywords", "contains", ["refund"])], "team-kw", priority=90),
            make_rule("cat", [("category", "equals", "billing")], "team-cat", priority=80),
            make_rule("both", [("category", "equals", "billing"), ("keywords", "contains", "refund")], "team-both", priority=10),
            make_rule("auto", [("category", "equals", "billing")], None, priority=5, action_type="autoAssign"),
        ]
        engine, _ = _engine(rules)

        result = await engine.route_ticket(TicketSnapshot(category="billing"), "refund please")

        assert result.rule_id == "both"
        assert result.confidence == 100
        # "cat" and "auto" tie at 1.0; store priority order breaks the tie
        assert [(a.team_id, a.score) for a in result.alternative_options] == [("team-cat", 1.0), ("unassigned", 1.0)]

    @pytest.mark.asyncio
    async def test_assign_user_action(self):
        rule = make_rule("vip", [("keywords", "contains", ["vip"])], "user-42", action_type="assignUser")
        rule.action.metadata = {"team_id": "team-concierge"}
        engine, _ = _engine([rule])

        result = await engine.route_ticket(TicketSnapshot(), "VIP member complaint")

        assert result.suggested_user_id == "user-42"
        assert result.suggested_team_id == "team-concierge"
        assert result.confidence == pytest.approx(80)

    @pytest.mark.asyncio
    async def test_invalid_regex_does_not_abort_routing(self):
        rules = [
            make_rule("bad", [("category", "matches", "([")], "team-bad", priority=90),
            make_rule("good", [("category", "matches", "^bill")], "team-good", priority=10),
        ]
        engine, _ = _engine(rules)
        result = await engine.route_ticket(TicketSnapshot(category="Billing"), "")
        assert result.rule_id == "good"

    @pytest.mark.asyncio
    async def test_default_rules_fall_back_to_catch_all(self):
        manager = RulesManager()
        manager.install_defaults()
        engine = RoutingEngine(manager, manager)

        critical = await engine.route_ticket(TicketSnapshot(priority="critical"), "")
        medium = await engine.route_ticket(TicketSnapshot(priority="medium"), "")

        assert critical.rule_id == "rule-critical-priority"
        assert critical.confidence == 100
        assert critical.alternative_options[0].team_id == "unassigned"
        assert medium.rule_id == "rule-default"
        assert medium.outcome == "matched"
        assert medium.suggested_team_id is None
        assert medium.confidence == pytest.approx(1)

    @pytest.mark.asyncio
    async def test_source_failure_degrades_to_default(self):
        source = CountingSource([])
        source.fail = True
        engine = RoutingEngine(source, RulesManager())

        result = await engine.route_ticket(TicketSnapshot(priority="critical"), "")

        assert result.confidence == 0
        assert result.suggested_team_id is None
        assert result.outcome == "error"
        assert "RuntimeError" in result.failure_reason


class TestRuleCache:
    @pytest.mark.asyncio
    async def test_rules_loaded_once_per_window(self, clock):
        source = CountingSource([make_rule("r1", [("priority", "equals", "high")], "team-a")])
        engine = RoutingEngine(source, RulesManager(), cache_ttl_seconds=300, clock=clock)

        await engine.route_ticket(TicketSnapshot(priority="high"), "")
        clock.advance(299)
        await engine.route_ticket(TicketSnapshot(priority="high"), "")
        assert source.loads == 1

        clock.advance(1)
        await engine.route_ticket(TicketSnapshot(priority="high"), "")
        assert source.loads == 2

    @pytest.mark.asyncio
    async def test_clear_cache_forces_reload(self, clock):
        source = CountingSource([])
        engine = RoutingEngine(source, RulesManager(), clock=clock)
        await engine.route_ticket(TicketSnapshot(), "")
        engine.clear_cache()
        await engine.route_ticket(TicketSnapshot(), "")
        assert source.loads == 2

    @pytest.mark.asyncio
    async def test_stale_snapshot_served_when_source_fails(self, clock):
        source = CountingSource([make_rule("r1", [("priority", "equals", "high")], "team-a")])
        engine = RoutingEngine(source, RulesManager(), cache_ttl_seconds=300, clock=clock)
        await engine.route_ticket(TicketSnapshot(priority="high"), "")

        source.fail = True
        clock.advance(600)
        result = await engine.route_ticket(TicketSnapshot(priority="high"), "")

        assert result.outcome == "matched"
        assert result.suggested_team_id == "team-a"


class TestRecordFeedback:
    @pytest.mark.asyncio
    async def test_feedback_boosts_future_scores(self, clock):
        rule = make_rule("r1", [("priority", "equals", "high")], "team-a")
        engine, manager = _engine([rule], clock=clock)
        ticket = TicketSnapshot(priority="high")
        await engine.route_ticket(ticket, "")

        for ticket_id, correct in (("t1", True), ("t2", True), ("t3", False)):
            fb = await engine.record_feedback("r1", ticket_id, correct)
            assert fb is not None
            assert fb.score == (1.0 if correct else 0.0)

        assert len(manager.get_rule("r1").feedback) == 3
        assert engine.evaluate_rule(manager.get_rule("r1"), ticket, "") == pytest.approx(1.1)
        result = await engine.route_ticket(ticket, "")
        assert result.confidence == 100

    @pytest.mark.asyncio
    async def test_feedback_invalidates_cache(self, clock):
        manager = RulesManager([make_rule("r1", [("priority", "equals", "high")], "team-a")])
        source = CountingSource(manager.get_all_rules())
        engine = RoutingEngine(source, manager, clock=clock)
        await engine.route_ticket(TicketSnapshot(priority="high"), "")

        await engine.record_feedback("r1", "t1", False, actual_team_id="team-b")
        await engine.route_ticket(TicketSnapshot(priority="high"), "")

        assert source.loads == 2

    @pytest.mark.asyncio
    async def test_unknown_rule_returns_none(self):
        engine, _ = _engine([])
        assert await engine.record_feedback("missing", "t1", True) is None

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self):
        class BrokenSink:
            async def append_feedback(self, feedback):
                raise ConnectionError("feedback store down")

        engine = RoutingEngine(RulesManager(), BrokenSink())
        assert await engine.record_feedback("r1", "t1", True) is None
