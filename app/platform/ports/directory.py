from typing import Protocol, Sequence, runtime_checkable
from app.modules.assignment.schemas import TeamMember, TeamMemberMetrics

@runtime_checkable
class TeamDirectoryPort(Protocol):
    async def list_members(self, team_id: str) -> list[TeamMember]: ...

@runtime_checkable
class MetricsSourcePort(Protocol):
    async def get_member_metrics(self, members: Sequence[TeamMember]) -> list[TeamMemberMetrics]: ...
