import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.assignment.engine import AssignmentEngine
from app.modules.assignment.schemas import AssignmentResult, AssignmentStrategy
from app.modules.events.outbox import OutboxService
from app.modules.routing.engine import RoutingEngine
from app.modules.routing.schemas import RoutingResult, TicketSnapshot
from app.modules.tickets.models import Ticket
from app.modules.tickets.repository import TicketRepository, AssignmentRepository
from app.modules.tickets.schemas import TicketCreate, TicketUpdate, TicketCreated, TicketOut

log = logging.getLogger("tickets.service")

REQUIRED_FIELDS = ("priority", "status")

def _now() -> datetime:
    return datetime.now(timezone.utc)

def ticket_content(title: str, description: str | None) -> str:
    return f"{title}\n{description}" if description else title

class TicketService:
    def __init__(
        self,
        session: AsyncSession,
        routing: RoutingEngine,
        assignment: AssignmentEngine,
        default_strategy: str = "least-loaded",
    ):
        self.session = session
        self.routing = routing
        self.assignment = assignment
        self.default_strategy = default_strategy
        self.tickets = TicketRepository(session)
        self.assignments = AssignmentRepository(session)

    # ---- Tickets ----
    async def create_ticket(self, payload: TicketCreate) -> TicketCreated:
        data = payload.model_dump(exclude_unset=True, exclude={"team_id", "assignment_strategy", "required_skills"})
        obj = await self.tickets.create(ticket_number=await self.tickets.next_number(), **data)

        routing = await self.routing.route_ticket(
            TicketSnapshot.model_validate(obj), ticket_content(obj.title, obj.description)
        )
        team_id = routing.suggested_team_id or payload.team_id
        user_id = routing.suggested_user_id
        assignment: AssignmentResult | None = None

        if user_id:
            await self.assignments.create(
                obj.id, user_id, team_id=team_id, strategy="rule",
                score=routing.confidence, reason=routing.reasoning,
            )
        elif team_id:
            strategy = payload.assignment_strategy or AssignmentStrategy(type=self.default_strategy)
            assignment = await self.assignment.assign_ticket(team_id, obj.id, strategy, payload.required_skills)
            user_id = assignment.assigned_user_id
            if user_id:
                await self.assignments.create(
                    obj.id, user_id, team_id=team_id, strategy=assignment.strategy,
                    score=assignment.score, reason=assignment.reasoning,
                )
        else:
            log.info(f"Ticket {obj.ticket_number} needs manual triage: no team suggested or supplied")

        obj.assigned_team_id = team_id
        obj.assigned_user_id = user_id
        obj.routing_rule_id = routing.rule_id
        obj.routing_confidence = routing.confidence
        if user_id:
            obj.status = "open"

        await OutboxService(self.session).enqueue(
            "TICKET_CREATED", "ticket", obj.id,
            {
                "ticket_number": obj.ticket_number,
                "priority": obj.priority,
                "category": obj.category,
                "team_id": team_id,
                "user_id": user_id,
                "routing_outcome": routing.outcome,
                "assignment_outcome": assignment.outcome if assignment else None,
            },
        )
        await self.session.commit()
        return TicketCreated(ticket=TicketOut.model_validate(obj), routing=routing, assignment=assignment)

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        return await self.tickets.get(ticket_id)

    async def list_tickets(self, **filters):
        return await self.tickets.list(**filters)

    async def update_ticket(self, ticket_id: str, payload: TicketUpdate) -> Ticket | None:
        obj = await self.tickets.get(ticket_id)
        if not obj:
            return None

        before_status = obj.status
        # explicit nulls clear optional fields; priority and status cannot be cleared
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items()
                   if v is not None or k not in REQUIRED_FIELDS}
        if payload.status and payload.status != before_status:
            if payload.status == "resolved":
                changes["resolved_at"] = _now()
            elif payload.status == "closed":
                changes["closed_at"] = _now()
                if obj.resolved_at is None:
                    changes["resolved_at"] = changes["closed_at"]

        obj = await self.tickets.update_fields(ticket_id, **changes)
        if payload.status and payload.status != before_status:
            await OutboxService(self.session).enqueue(
                "TICKET_STATUS_CHANGED", "ticket", obj.id,
                {"from": before_status, "to": payload.status}
            )
        await self.session.commit()
        return obj
