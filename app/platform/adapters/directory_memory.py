import logging
from typing import Iterable, Sequence
from app.modules.assignment.schemas import TeamMember, TeamMemberMetrics
from app.platform.ports.directory import MetricsSourcePort, TeamDirectoryPort

log = logging.getLogger("directory.memory")

class InMemoryDirectory(TeamDirectoryPort, MetricsSourcePort):
    """Team directory and workload metrics held in process memory.

    Used for local development and tests; members without recorded metrics
    report an idle, available snapshot.
    """

    def __init__(self, members: Iterable[TeamMember] = (), metrics: Iterable[TeamMemberMetrics] = ()):
        self._members: list[TeamMember] = list(members)
        self._metrics: dict[str, TeamMemberMetrics] = {m.user_id: m for m in metrics}

    def add_member(self, member: TeamMember, metrics: TeamMemberMetrics | None = None) -> None:
        self._members.append(member)
        if metrics is not None:
            self._metrics[member.user_id] = metrics

    def set_metrics(self, metrics: TeamMemberMetrics) -> None:
        self._metrics[metrics.user_id] = metrics

    async def list_members(self, team_id: str) -> list[TeamMember]:
        return [m for m in self._members if m.team_id == team_id]

    async def get_member_metrics(self, members: Sequence[TeamMember]) -> list[TeamMemberMetrics]:
        return [self._metrics.get(m.user_id) or TeamMemberMetrics(user_id=m.user_id) for m in members]
