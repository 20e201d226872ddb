from collections import defaultdict
from datetime import timezone
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.modules.routing.models import RoutingRuleRow, RoutingFeedbackRow
from app.modules.routing.schemas import RoutingFeedback, RoutingRule

def _aware(dt):
    # some drivers hand back naive timestamps for timezone columns
    return dt.replace(tzinfo=timezone.utc) if dt is not None and dt.tzinfo is None else dt

def _to_rule(row: RoutingRuleRow, feedback: Sequence[RoutingFeedbackRow]) -> RoutingRule:
    return RoutingRule(
        id=row.id,
        name=row.name,
        priority=row.priority,
        is_active=row.is_active,
        conditions=row.conditions or [],
        action=row.action,
        feedback=[
            RoutingFeedback(
                id=f.id,
                rule_id=f.rule_id,
                ticket_id=f.ticket_id,
                was_correct=f.was_correct,
                actual_team_id=f.actual_team_id,
                score=f.score,
                created_at=_aware(f.created_at) or utcnow(),
            )
            for f in feedback
        ],
        created_at=_aware(row.created_at) or utcnow(),
        updated_at=_aware(row.updated_at) or utcnow(),
    )

class RoutingRuleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> list[RoutingRule]:
        rows = (await self.session.execute(
            select(RoutingRuleRow).where(RoutingRuleRow.deleted_at.is_(None))
        )).scalars().all()
        fb_rows = (await self.session.execute(
            select(RoutingFeedbackRow)
            .where(RoutingFeedbackRow.deleted_at.is_(None))
            .order_by(RoutingFeedbackRow.created_at.asc())
        )).scalars().all()

        by_rule: dict[str, list[RoutingFeedbackRow]] = defaultdict(list)
        for f in fb_rows:
            by_rule[f.rule_id].append(f)
        return [_to_rule(r, by_rule[r.id]) for r in rows]

    async def upsert(self, rule: RoutingRule) -> RoutingRuleRow:
        obj = await self.session.get(RoutingRuleRow, rule.id)
        data = dict(
            name=rule.name,
            priority=rule.priority,
            is_active=rule.is_active,
            conditions=[c.model_dump() for c in rule.conditions],
            action=rule.action.model_dump() if rule.action else None,
            updated_at=rule.updated_at,
        )
        if obj is None:
            obj = RoutingRuleRow(id=rule.id, created_at=rule.created_at)
            self.session.add(obj)
        obj.deleted_at = None
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def soft_delete(self, rule_id: str) -> bool:
        obj = await self.session.get(RoutingRuleRow, rule_id)
        if obj is None or obj.deleted_at is not None:
            return False
        obj.deleted_at = utcnow()
        await self.session.flush()
        return True

    async def add_feedback(self, feedback: RoutingFeedback) -> RoutingFeedbackRow:
        obj = RoutingFeedbackRow(
            id=feedback.id,
            rule_id=feedback.rule_id,
            ticket_id=feedback.ticket_id,
            was_correct=feedback.was_correct,
            actual_team_id=feedback.actual_team_id,
            score=feedback.score,
        )
        self.session.add(obj)
        await self.session.flush()
        return obj
