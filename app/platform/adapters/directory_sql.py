import logging
from typing import Sequence
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.modules.assignment.models import TeamMember as TeamMemberRow
from app.modules.assignment.schemas import TeamMember, TeamMemberMetrics
from app.modules.tickets.models import Ticket, DONE_STATUSES
from app.platform.ports.directory import MetricsSourcePort, TeamDirectoryPort

log = logging.getLogger("directory.sql")

class SqlTeamDirectory(TeamDirectoryPort):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_members(self, team_id: str) -> list[TeamMember]:
        async with self.session_factory() as session:
            q = select(TeamMemberRow).where(
                TeamMemberRow.team_id == team_id,
                TeamMemberRow.deleted_at.is_(None),
            ).order_by(TeamMemberRow.created_at.asc())
            res = await session.execute(q)
            return [TeamMember.model_validate(r) for r in res.scalars().all()]

class SqlMetricsSource(MetricsSourcePort):
    """Workload snapshot per member, aggregated from the ticket table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], default_max_active_tickets: int = 10):
        self.session_factory = session_factory
        self.default_max_active_tickets = default_max_active_tickets

    async def get_member_metrics(self, members: Sequence[TeamMember]) -> list[TeamMemberMetrics]:
        if not members:
            return []
        user_ids = [m.user_id for m in members]
        team_ids = {m.team_id for m in members}

        async with self.session_factory() as session:
            active_q = select(Ticket.assigned_user_id, func.count(Ticket.id)).where(
                Ticket.assigned_user_id.in_(user_ids),
                Ticket.status.not_in(DONE_STATUSES),
                Ticket.deleted_at.is_(None),
            ).group_by(Ticket.assigned_user_id)
            active = dict((await session.execute(active_q)).all())

            hours = func.extract("epoch", Ticket.resolved_at - Ticket.created_at) / 3600.0
            resolution_q = select(Ticket.assigned_user_id, func.avg(hours)).where(
                and_(
                    Ticket.assigned_user_id.in_(user_ids),
                    Ticket.resolved_at.is_not(None),
                    Ticket.deleted_at.is_(None),
                )
            ).group_by(Ticket.assigned_user_id)
            resolution = dict((await session.execute(resolution_q)).all())

            rows_q = select(TeamMemberRow).where(
                TeamMemberRow.user_id.in_(user_ids),
                TeamMemberRow.team_id.in_(team_ids),
                TeamMemberRow.deleted_at.is_(None),
            )
            rows = {r.user_id: r for r in (await session.execute(rows_q)).scalars().all()}

        metrics = []
        for m in members:
            row = rows.get(m.user_id)
            capacity = (row.max_active_tickets if row and row.max_active_tickets else self.default_max_active_tickets)
            count = int(active.get(m.user_id, 0))
            metrics.append(TeamMemberMetrics(
                user_id=m.user_id,
                active_tickets=count,
                avg_resolution_time_hours=float(resolution.get(m.user_id) or 0.0),
                skills=list(row.skills or []) if row else [],
                availability=row.availability if row else "available",
                workload_percentage=min(100.0, count / max(capacity, 1) * 100),
            ))
        return metrics
