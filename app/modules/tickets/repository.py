from typing import Sequence
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.tickets.models import Ticket, Assignment, TICKET_NUMBER_SEQ

class TicketRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_number(self) -> str:
        number = (await self.session.execute(select(TICKET_NUMBER_SEQ.next_value()))).scalar_one()
        return f"TKT-{number:06d}"

    async def create(self, **data) -> Ticket:
        obj = Ticket(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, ticket_id: str) -> Ticket | None:
        q = select(Ticket).where(
            Ticket.id == ticket_id,
            Ticket.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, *, status: str | None = None, category: str | None = None, priority: str | None = None,
                   studio_id: str | None = None, assigned_user_id: str | None = None,
                   limit: int = 50, offset: int = 0) -> Sequence[Ticket]:
        conditions = [Ticket.deleted_at.is_(None)]
        if status:   conditions.append(Ticket.status == status)
        if category: conditions.append(Ticket.category == category)
        if priority: conditions.append(Ticket.priority == priority)
        if studio_id: conditions.append(Ticket.studio_id == studio_id)
        if assigned_user_id: conditions.append(Ticket.assigned_user_id == assigned_user_id)
        q = select(Ticket).where(and_(*conditions)).order_by(Ticket.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update_fields(self, ticket_id: str, **data) -> Ticket | None:
        obj = await self.get(ticket_id)
        if not obj:
            return None
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj

class AssignmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ticket_id: str, assignee_id: str, *, team_id: str | None, strategy: str | None,
                     score: float | None, reason: str | None) -> Assignment:
        obj = Assignment(ticket_id=ticket_id, assignee_id=assignee_id, team_id=team_id,
                         strategy=strategy, score=score, reason=(reason or "")[:255] or None)
        self.session.add(obj)
        await self.session.flush()
        return obj
