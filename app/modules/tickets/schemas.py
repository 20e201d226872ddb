from datetime import datetime
from pydantic import BaseModel, Field
from app.modules.assignment.schemas import AssignmentResult, AssignmentStrategy
from app.modules.routing.schemas import RoutingResult

PRIORITY_PATTERN = "^(low|medium|high|critical)$"
STATUS_PATTERN = "^(new|open|in_progress|pending_customer|escalated|reopened|resolved|closed)$"

# ---- Tickets ----

class TicketCreate(BaseModel):
    studio_id: str
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    category: str | None = None
    subcategory: str | None = None
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    customer_name: str | None = None
    customer_email: str | None = None
    client_mood: str | None = None
    sentiment: str | None = Field(default=None, pattern="^(positive|negative|neutral)$")
    tags: list[str] | None = None

    # Fallback team when no rule suggests one, and assignment hints
    team_id: str | None = None
    assignment_strategy: AssignmentStrategy | None = None
    required_skills: list[str] | None = None

class TicketUpdate(BaseModel):
    category: str | None = None
    subcategory: str | None = None
    priority: str | None = Field(default=None, pattern=PRIORITY_PATTERN)
    status: str | None = Field(default=None, pattern=STATUS_PATTERN)
    assigned_team_id: str | None = None
    assigned_user_id: str | None = None
    description: str | None = None

class TicketOut(BaseModel):
    id: str
    ticket_number: str
    studio_id: str
    category: str | None
    subcategory: str | None
    priority: str
    status: str
    title: str
    description: str | None
    sentiment: str | None
    assigned_team_id: str | None
    assigned_user_id: str | None
    routing_rule_id: str | None
    routing_confidence: float | None
    created_at: datetime | None
    updated_at: datetime | None
    resolved_at: datetime | None
    closed_at: datetime | None

    class Config:
        from_attributes = True

class TicketCreated(BaseModel):
    ticket: TicketOut
    routing: RoutingResult
    assignment: AssignmentResult | None = None
