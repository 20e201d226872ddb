from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_registry
from app.core.db import get_session
from app.core.security import require_scopes
from app.modules.tickets.schemas import TicketCreate, TicketUpdate, TicketOut, TicketCreated
from app.modules.tickets.service import TicketService
from app.modules.tickets.schemas import PRIORITY_PATTERN, STATUS_PATTERN
from app.platform.provider_registry import ProviderRegistry

router = APIRouter()

def svc(
    session: AsyncSession = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
) -> TicketService:
    return TicketService(
        session,
        registry.routing_engine(),
        registry.assignment_engine(),
        default_strategy=registry.settings.DEFAULT_ASSIGNMENT_STRATEGY,
    )

@router.post("/tickets", response_model=TicketCreated, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_scopes("tickets:write"))])
async def create_ticket(
    payload: TicketCreate,
    service: TicketService = Depends(svc),
):
    return await service.create_ticket(payload)

@router.get("/tickets/{ticket_id}", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:read"))])
async def get_ticket(
    ticket_id: str,
    service: TicketService = Depends(svc),
):
    obj = await service.get_ticket(ticket_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return obj

@router.get("/tickets", response_model=list[TicketOut], dependencies=[Depends(require_scopes("tickets:read"))])
async def list_tickets(
    status: str | None = Query(default=None, pattern=STATUS_PATTERN),
    category: str | None = None,
    priority: str | None = Query(default=None, pattern=PRIORITY_PATTERN),
    studio_id: str | None = None,
    assigned_user_id: str | None = None,
    limit: int = Query(50, ge=1, le=200), offset: int = 0,
    service: TicketService = Depends(svc),
):
    return await service.list_tickets(status=status, category=category, priority=priority, studio_id=studio_id,
                                      assigned_user_id=assigned_user_id, limit=limit, offset=offset)

@router.patch("/tickets/{ticket_id}", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:write"))])
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdate,
    service: TicketService = Depends(svc),
):
    obj = await service.update_ticket(ticket_id, payload)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return obj
