import logging
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.routing.engine import RoutingEngine
from app.modules.routing.repository import RoutingRuleRepository
from app.modules.routing.rules import RulesManager
from app.modules.routing.schemas import (
    FeedbackCreate, RoutingFeedback, RoutingRule, RuleCreate, RuleUpdate,
)

log = logging.getLogger("routing.service")

class RulesService:
    """Rule administration for the HTTP layer.

    Mutations go to the in-process RulesManager first; when a session is given
    they are also written through to Postgres. A failed write rolls the session
    back and restores the manager, so routing never serves a rule the database
    does not hold. The engine's rule cache is dropped after every change so
    edits take effect on the next ticket.
    """

    def __init__(self, manager: RulesManager, engine: RoutingEngine, session: AsyncSession | None = None):
        self.manager = manager
        self.engine = engine
        self.session = session
        self.repo = RoutingRuleRepository(session) if session is not None else None

    def _restore(self, rule_id: str, previous: RoutingRule | None) -> None:
        if previous is None:
            self.manager.delete_rule(rule_id)
        else:
            self.manager.load([previous])

    async def _persist(self, rule: RoutingRule, previous: RoutingRule | None = None) -> None:
        if self.repo is None:
            return
        try:
            await self.repo.upsert(rule)
            await self.session.commit()
        except Exception:
            log.exception(f"Persisting routing rule {rule.id} failed; reverting in-memory change")
            await self.session.rollback()
            self._restore(rule.id, previous)
            raise

    async def create_custom_rule(self, payload: RuleCreate) -> RoutingRule:
        rule = self.manager.create_custom_rule(payload.name, payload.conditions, payload.action, payload.priority)
        await self._persist(rule)
        self.engine.clear_cache()
        return rule

    async def create_from_template(self, template_id: str, overrides: dict[str, Any] | None) -> RoutingRule | None:
        rule = self.manager.create_rule_from_template(template_id, overrides)
        if rule is None:
            return None
        await self._persist(rule)
        self.engine.clear_cache()
        return rule

    async def update_rule(self, rule_id: str, payload: RuleUpdate) -> RoutingRule | None:
        previous = self.manager.get_rule(rule_id)
        rule = self.manager.update_rule(rule_id, payload.model_dump(exclude_unset=True))
        if rule is None:
            return None
        await self._persist(rule, previous)
        self.engine.clear_cache()
        return rule

    async def delete_rule(self, rule_id: str) -> bool:
        previous = self.manager.get_rule(rule_id)
        removed = self.manager.delete_rule(rule_id)
        if removed and self.repo is not None:
            try:
                await self.repo.soft_delete(rule_id)
                await self.session.commit()
            except Exception:
                log.exception(f"Deleting routing rule {rule_id} failed; restoring it")
                await self.session.rollback()
                self._restore(rule_id, previous)
                raise
        if removed:
            self.engine.clear_cache()
        return removed

    async def record_feedback(self, payload: FeedbackCreate) -> RoutingFeedback | None:
        previous = self.manager.get_rule(payload.rule_id)
        feedback = await self.engine.record_feedback(
            payload.rule_id, payload.ticket_id, payload.was_correct, payload.actual_team_id
        )
        if feedback is not None and self.repo is not None:
            try:
                await self.repo.add_feedback(feedback)
                await self.session.commit()
            except Exception:
                log.exception(f"Persisting feedback for rule {payload.rule_id} failed; dropping it")
                await self.session.rollback()
                self._restore(payload.rule_id, previous)
                self.engine.clear_cache()
                raise
        return feedback

async def hydrate_rules(manager: RulesManager, session: AsyncSession, seed_defaults: bool) -> int:
    """Load persisted rules into the manager; seed defaults into an empty table."""
    repo = RoutingRuleRepository(session)
    rules = await repo.list_all()
    if not rules and seed_defaults:
        rules = manager.install_defaults()
        for rule in rules:
            await repo.upsert(rule)
        await session.commit()
        log.info(f"Seeded {len(rules)} default routing rules")
    else:
        manager.load(rules)
    return len(rules)
