"""Shared fixtures for routing and assignment tests."""

import pytest

from app.modules.assignment.schemas import TeamMember, TeamMemberMetrics
from app.modules.routing.schemas import RoutingAction, RoutingCondition, RoutingRule
from app.platform.adapters.directory_memory import InMemoryDirectory


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_rule(
    rule_id: str,
    conditions: list[tuple[str, str, object]],
    target: str | None = None,
    priority: int = 50,
    action_type: str = "assignTeam",
    **kwargs,
) -> RoutingRule:
    return RoutingRule(
        id=rule_id,
        name=kwargs.pop("name", rule_id),
        priority=priority,
        conditions=[RoutingCondition(field=f, operator=o, value=v) for f, o, v in conditions],
        action=RoutingAction(type=action_type, target_id=target),
        **kwargs,
    )


def make_team(team_id: str, *metrics: TeamMemberMetrics, inactive: tuple[str, ...] = ()) -> InMemoryDirectory:
    directory = InMemoryDirectory()
    for m in metrics:
        directory.add_member(TeamMember(user_id=m.user_id, team_id=team_id, is_active=m.user_id not in inactive), m)
    return directory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
