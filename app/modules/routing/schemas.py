from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel, Field
from app.core.base import utcnow

ConditionField = Literal["category", "subcategory", "priority", "studio", "keywords", "sentiment"]
ConditionOperator = Literal["equals", "contains", "in", "matches"]
ActionType = Literal["assignTeam", "assignUser", "autoAssign"]

# ---- Rules ----

class RoutingCondition(BaseModel):
    field: ConditionField
    operator: ConditionOperator
    value: str | list[str]

class RoutingAction(BaseModel):
    type: ActionType
    target_id: str | None = None
    metadata: dict[str, Any] | None = None

class RoutingFeedback(BaseModel):
    id: str
    rule_id: str
    ticket_id: str
    was_correct: bool
    actual_team_id: str | None = None
    score: float
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

class RoutingRule(BaseModel):
    id: str
    name: str
    # range is checked by RulesManager.validate_rule, not here
    priority: int = 50
    is_active: bool = True
    conditions: list[RoutingCondition] = []
    action: RoutingAction | None = None
    feedback: list[RoutingFeedback] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class RuleTemplate(BaseModel):
    id: str
    name: str
    description: str
    conditions: list[RoutingCondition]
    action: RoutingAction

class RuleValidation(BaseModel):
    valid: bool
    errors: list[str] = []

# ---- Requests ----

class RuleCreate(BaseModel):
    name: str
    conditions: list[RoutingCondition]
    action: RoutingAction
    priority: int = 50

class RuleFromTemplate(BaseModel):
    template_id: str
    overrides: dict[str, Any] | None = None

class RuleUpdate(BaseModel):
    name: str | None = None
    priority: int | None = None
    is_active: bool | None = None
    conditions: list[RoutingCondition] | None = None
    action: RoutingAction | None = None

class FeedbackCreate(BaseModel):
    rule_id: str
    ticket_id: str
    was_correct: bool
    actual_team_id: str | None = None

# ---- Routing ----

class TicketSnapshot(BaseModel):
    """The ticket fields routing conditions can look at."""
    id: str | None = None
    category: str | None = None
    subcategory: str | None = None
    priority: str | None = None
    studio_id: str | None = None
    sentiment: str | None = None

    class Config:
        from_attributes = True

class RouteRequest(BaseModel):
    ticket: TicketSnapshot
    content: str = ""

class AlternativeTeam(BaseModel):
    team_id: str
    score: float

class RoutingResult(BaseModel):
    suggested_team_id: str | None = None
    suggested_user_id: str | None = None
    confidence: float = 0
    rule_id: str | None = None
    reasoning: str
    alternative_options: list[AlternativeTeam] = []
    outcome: Literal["matched", "no_match", "error"] = "matched"
    failure_reason: str | None = None
