"""Tests for team assignment."""

import pytest

from app.modules.assignment.engine import AssignmentEngine
from app.modules.assignment.schemas import AssignmentStrategy, TeamMember, TeamMemberMetrics

from conftest import make_team


def m(user_id: str, workload: float = 0, active: int = 0, availability: str = "available", skills=()):
    return TeamMemberMetrics(
        user_id=user_id,
        workload_percentage=workload,
        active_tickets=active,
        availability=availability,
        skills=list(skills),
    )


class CountingMetrics:
    def __init__(self, metrics: list[TeamMemberMetrics]):
        self.metrics = {x.user_id: x for x in metrics}
        self.calls = 0

    async def get_member_metrics(self, members):
        self.calls += 1
        return [self.metrics[x.user_id] for x in members]


class TestAssignTicket:
    @pytest.mark.asyncio
    async def test_empty_team(self):
        directory = make_team("team-a")
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1")

        assert result.assigned_user_id is None
        assert result.score == 0
        assert "no available team members" in result.reasoning.lower()
        assert result.outcome == "no_candidates"
        assert result.strategy == "least-loaded"

    @pytest.mark.asyncio
    async def test_inactive_members_are_ignored(self):
        directory = make_team("team-a", m("a"), inactive=("a",))
        engine = AssignmentEngine(directory, directory)
        result = await engine.assign_ticket("team-a", "t1")
        assert result.assigned_user_id is None

    @pytest.mark.asyncio
    async def test_least_loaded_by_default(self):
        directory = make_team("team-a", m("a", 50), m("b", 10), m("c", 90))
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1")

        assert result.assigned_user_id == "b"
        assert result.score == 90
        assert result.outcome == "assigned"
        assert not result.skill_match_degraded

    @pytest.mark.asyncio
    async def test_offline_members_are_skipped(self):
        directory = make_team("team-a", m("off", 0, availability="offline"), m("on", 40))
        engine = AssignmentEngine(directory, directory)
        result = await engine.assign_ticket("team-a", "t1")
        assert result.assigned_user_id == "on"

    @pytest.mark.asyncio
    async def test_everyone_offline(self):
        directory = make_team("team-a", m("a", availability="offline"), m("b", availability="offline"))
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1", required_skills=["billing"])

        assert result.assigned_user_id is None
        assert result.reasoning == "No qualified available team members"
        assert result.outcome == "no_candidates"

    @pytest.mark.asyncio
    async def test_required_skills_narrow_the_pool(self):
        directory = make_team("team-a", m("idle", 0), m("billing", 70, skills=["billing"]))
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1", required_skills=["billing"])

        assert result.assigned_user_id == "billing"
        assert not result.skill_match_degraded

    @pytest.mark.asyncio
    async def test_missing_skill_falls_back_to_available_members(self):
        directory = make_team(
            "team-a",
            m("a", 30, skills=["general"]),
            m("b", 60, availability="offline", skills=["billing"]),
        )
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1", required_skills=["billing"])

        assert result.assigned_user_id == "a"
        assert result.skill_match_degraded
        assert result.outcome == "assigned"

    @pytest.mark.asyncio
    async def test_balanced_strategy(self):
        directory = make_team("team-a", m("a", 20, availability="available"), m("b", 70, availability="busy"))
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1", AssignmentStrategy(type="balanced"))

        assert result.assigned_user_id == "a"
        assert result.score == 100
        assert result.strategy == "balanced"

    @pytest.mark.asyncio
    async def test_skill_based_reads_skills_from_strategy_metadata(self):
        directory = make_team("team-a", m("idle", 0), m("expert", 60, skills=["pilates"]))
        engine = AssignmentEngine(directory, directory)
        strategy = AssignmentStrategy(type="skill-based", metadata={"required_skills": ["pilates"]})

        result = await engine.assign_ticket("team-a", "t1", strategy)

        assert result.assigned_user_id == "expert"

    @pytest.mark.asyncio
    async def test_skill_based_uses_required_skills_argument(self):
        directory = make_team("team-a", m("idle", 0), m("expert", 60, skills=["pilates"]))
        engine = AssignmentEngine(directory, directory)

        result = await engine.assign_ticket("team-a", "t1", AssignmentStrategy(type="skill-based"), ["pilates", "yoga"])

        assert result.assigned_user_id == "expert"

    @pytest.mark.asyncio
    async def test_unknown_strategy(self):
        directory = make_team("team-a", m("a", 80), m("b", 20))
        engine = AssignmentEngine(directory, directory)
        result = await engine.assign_ticket("team-a", "t1", AssignmentStrategy(type="coin-flip"))
        assert result.assigned_user_id == "b"
        assert result.strategy == "least-loaded"

    @pytest.mark.asyncio
    async def test_directory_failure_degrades(self):
        class BrokenDirectory:
            async def list_members(self, team_id):
                raise ConnectionError("directory unreachable")

        engine = AssignmentEngine(BrokenDirectory(), CountingMetrics([]))
        result = await engine.assign_ticket("team-a", "t1", AssignmentStrategy(type="balanced"))

        assert result.assigned_user_id is None
        assert result.score == 0
        assert result.reasoning == "Assignment failed due to error"
        assert result.outcome == "error"
        assert result.strategy == "balanced"
        assert "ConnectionError" in result.failure_reason


class TestMetricsCache:
    @pytest.mark.asyncio
    async def test_metrics_cached_per_team(self, clock):
        directory = make_team("team-a", m("a", 10))
        metrics = CountingMetrics([m("a", 10)])
        engine = AssignmentEngine(directory, metrics, cache_ttl_seconds=300, clock=clock)

        await engine.assign_ticket("team-a", "t1")
        clock.advance(120)
        await engine.assign_ticket("team-a", "t2")
        assert metrics.calls == 1

        clock.advance(181)
        await engine.assign_ticket("team-a", "t3")
        assert metrics.calls == 2

    @pytest.mark.asyncio
    async def test_teams_do_not_share_entries(self, clock):
        directory = make_team("team-a", m("a"))
        directory.add_member(TeamMember(user_id="b", team_id="team-b"), m("b"))
        metrics = CountingMetrics([m("a"), m("b")])
        engine = AssignmentEngine(directory, metrics, clock=clock)

        await engine.assign_ticket("team-a", "t1")
        result = await engine.assign_ticket("team-b", "t2")

        assert metrics.calls == 2
        assert result.assigned_user_id == "b"

    @pytest.mark.asyncio
    async def test_clear_cache(self, clock):
        directory = make_team("team-a", m("a"))
        metrics = CountingMetrics([m("a")])
        engine = AssignmentEngine(directory, metrics, clock=clock)

        await engine.assign_ticket("team-a", "t1")
        engine.clear_cache()
        await engine.assign_ticket("team-a", "t2")

        assert metrics.calls == 2


class TestWorkloadStats:
    @pytest.mark.asyncio
    async def test_aggregates(self):
        directory = make_team(
            "team-a",
            m("a", 90, active=9),
            m("b", 30, active=3),
            m("c", 60, active=6, availability="busy"),
            m("d", 20, active=2, availability="away"),
        )
        engine = AssignmentEngine(directory, directory)

        stats = await engine.get_team_workload_stats("team-a")

        assert stats.total_active_tickets == 20
        assert stats.average_workload_percentage == pytest.approx(50)
        assert stats.busy_members == 1
        assert stats.available_members == 1

    @pytest.mark.asyncio
    async def test_empty_team(self):
        directory = make_team("team-a")
        engine = AssignmentEngine(directory, directory)
        stats = await engine.get_team_workload_stats("team-a")
        assert stats.total_active_tickets == 0
        assert stats.average_workload_percentage == 0
