from typing import Any, Literal
from pydantic import BaseModel, Field

Availability = Literal["available", "busy", "away", "offline"]

class TeamMember(BaseModel):
    user_id: str
    team_id: str
    display_name: str | None = None
    role: str = "staff"
    is_active: bool = True

    class Config:
        from_attributes = True

class TeamMemberMetrics(BaseModel):
    user_id: str
    active_tickets: int = 0
    avg_resolution_time_hours: float = 0.0
    skills: list[str] = []
    availability: Availability = "available"
    workload_percentage: float = Field(default=0.0, ge=0, le=100)

class AssignmentStrategy(BaseModel):
    # unknown types are accepted and handled as least-loaded
    type: str = "least-loaded"
    metadata: dict[str, Any] | None = None

class AlternativeAssignee(BaseModel):
    user_id: str
    score: float

class AssignmentResult(BaseModel):
    assigned_user_id: str | None
    strategy: str
    score: float
    reasoning: str
    alternatives: list[AlternativeAssignee] = []
    skill_match_degraded: bool = False
    outcome: Literal["assigned", "no_candidates", "error"] = "assigned"
    failure_reason: str | None = None

class AssignRequest(BaseModel):
    team_id: str
    ticket_id: str
    strategy: AssignmentStrategy | None = None
    required_skills: list[str] | None = None

class TeamWorkloadStats(BaseModel):
    total_active_tickets: int
    average_workload_percentage: float
    busy_members: int
    available_members: int
