"""Workload-aware ticket assignment within a team."""
import logging
import time
from typing import Callable, Sequence

from app.core.cache import TTLCache
from app.modules.assignment.schemas import (
    AssignmentResult, AssignmentStrategy, TeamMember, TeamMemberMetrics, TeamWorkloadStats,
)
from app.modules.assignment.strategies import select_assignee
from app.platform.ports.directory import MetricsSourcePort, TeamDirectoryPort

log = logging.getLogger("assignment.engine")

class AssignmentEngine:
    def __init__(
        self,
        directory: TeamDirectoryPort,
        metrics: MetricsSourcePort,
        cache_ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = directory
        self.metrics = metrics
        # one entry per team: {user_id: metrics}
        self._cache: TTLCache[str, dict[str, TeamMemberMetrics]] = TTLCache(cache_ttl_seconds, clock=clock)

    async def assign_ticket(
        self,
        team_id: str,
        ticket_id: str,
        strategy: AssignmentStrategy | None = None,
        required_skills: Sequence[str] | None = None,
    ) -> AssignmentResult:
        strategy = strategy or AssignmentStrategy(type="least-loaded")
        try:
            members = await self._active_members(team_id)
            if not members:
                return AssignmentResult(
                    assigned_user_id=None,
                    strategy=strategy.type,
                    score=0,
                    reasoning="No available team members",
                    outcome="no_candidates",
                )

            metrics = await self._member_metrics(team_id, members)

            available = [m for m in metrics if m.availability != "offline"]
            candidates = available
            degraded = False
            if required_skills:
                candidates = [m for m in available if any(s in m.skills for s in required_skills)]
                if not candidates and available:
                    # skills narrow the pool, they never empty it
                    candidates = available
                    degraded = True

            if not candidates:
                return AssignmentResult(
                    assigned_user_id=None,
                    strategy=strategy.type,
                    score=0,
                    reasoning="No qualified available team members",
                    outcome="no_candidates",
                )

            skills_for_scoring = (strategy.metadata or {}).get("required_skills") or list(required_skills or [])
            result = select_assignee(candidates, strategy.type, skills_for_scoring)
            result.skill_match_degraded = degraded
            log.info(
                f"Ticket {ticket_id} assigned to {result.assigned_user_id} "
                f"in team {team_id} via {result.strategy} (score={result.score:.1f})"
            )
            return result
        except Exception as e:
            log.exception(f"Assignment failed for ticket {ticket_id} in team {team_id}")
            return AssignmentResult(
                assigned_user_id=None,
                strategy=strategy.type,
                score=0,
                reasoning="Assignment failed due to error",
                outcome="error",
                failure_reason=f"{type(e).__name__}: {e}",
            )

    async def get_team_workload_stats(self, team_id: str) -> TeamWorkloadStats:
        members = await self._active_members(team_id)
        metrics = await self._member_metrics(team_id, members)
        n = len(metrics)
        return TeamWorkloadStats(
            total_active_tickets=sum(m.active_tickets for m in metrics),
            average_workload_percentage=(sum(m.workload_percentage for m in metrics) / n) if n else 0.0,
            busy_members=sum(1 for m in metrics if m.workload_percentage > 80),
            available_members=sum(1 for m in metrics if m.availability == "available" and m.workload_percentage < 50),
        )

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _active_members(self, team_id: str) -> list[TeamMember]:
        members = await self.directory.list_members(team_id)
        return [m for m in members if m.is_active]

    async def _member_metrics(self, team_id: str, members: Sequence[TeamMember]) -> list[TeamMemberMetrics]:
        if not members:
            return []
        cache_key = f"metrics-{team_id}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return [cached[m.user_id] for m in members if m.user_id in cached]

        fresh = await self.metrics.get_member_metrics(members)
        self._cache.set(cache_key, {m.user_id: m for m in fresh})
        log.debug(f"Refreshed metrics for {len(fresh)} members of team {team_id}")
        return fresh
