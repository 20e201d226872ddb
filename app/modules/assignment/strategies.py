"""Assignee selection strategies.

Each strategy takes a non-empty candidate list and returns the winner, a
score in roughly [0, 100], reasoning, and up to two runners-up. Sorting is
stable, so ties go to the candidate listed first.
"""
from typing import Callable, Sequence
from app.modules.assignment.schemas import AlternativeAssignee, AssignmentResult, TeamMemberMetrics

def _load_score(m: TeamMemberMetrics) -> float:
    return max(0.0, 100 - m.workload_percentage)

def round_robin(candidates: Sequence[TeamMemberMetrics], required_skills: Sequence[str] = ()) -> AssignmentResult:
    ordered = sorted(candidates, key=lambda c: c.active_tickets)
    selected = ordered[0]
    return AssignmentResult(
        assigned_user_id=selected.user_id,
        strategy="round-robin",
        score=60,
        reasoning=f"Assigned using round-robin distribution. Current queue: {selected.active_tickets} tickets",
        alternatives=[
            AlternativeAssignee(user_id=c.user_id, score=60 - (c.active_tickets - selected.active_tickets) * 5)
            for c in ordered[1:3]
        ],
    )

def least_loaded(candidates: Sequence[TeamMemberMetrics], required_skills: Sequence[str] = ()) -> AssignmentResult:
    ordered = sorted(candidates, key=lambda c: c.workload_percentage)
    selected = ordered[0]
    return AssignmentResult(
        assigned_user_id=selected.user_id,
        strategy="least-loaded",
        score=_load_score(selected),
        reasoning=f"Assigned to least loaded member ({selected.workload_percentage:.0f}% capacity)",
        alternatives=[
            AlternativeAssignee(user_id=c.user_id, score=max(0.0, 100 - c.workload_percentage - (i + 1) * 5))
            for i, c in enumerate(ordered[1:3])
        ],
    )

def skill_based(candidates: Sequence[TeamMemberMetrics], required_skills: Sequence[str] = ()) -> AssignmentResult:
    def combined(c: TeamMemberMetrics) -> float:
        matched = sum(1 for s in required_skills if s in c.skills)
        skill_score = matched / max(len(required_skills), 1) * 100
        return skill_score * 0.6 + _load_score(c) * 0.4

    scored = sorted(((c, combined(c)) for c in candidates), key=lambda e: e[1], reverse=True)
    selected, score = scored[0]
    return AssignmentResult(
        assigned_user_id=selected.user_id,
        strategy="skill-based",
        score=score,
        reasoning=f"Assigned based on skill match ({', '.join(selected.skills)})",
        alternatives=[AlternativeAssignee(user_id=c.user_id, score=s) for c, s in scored[1:3]],
    )

def balanced(candidates: Sequence[TeamMemberMetrics], required_skills: Sequence[str] = ()) -> AssignmentResult:
    def combined(c: TeamMemberMetrics) -> float:
        return _load_score(c) + (20 if c.availability == "available" else 0)

    scored = sorted(((c, combined(c)) for c in candidates), key=lambda e: e[1], reverse=True)
    selected, score = scored[0]
    return AssignmentResult(
        assigned_user_id=selected.user_id,
        strategy="balanced",
        score=score,
        reasoning=f"Balanced assignment ({selected.workload_percentage:.0f}% load, {selected.availability})",
        alternatives=[AlternativeAssignee(user_id=c.user_id, score=s) for c, s in scored[1:3]],
    )

STRATEGIES: dict[str, Callable[..., AssignmentResult]] = {
    "round-robin": round_robin,
    "least-loaded": least_loaded,
    "skill-based": skill_based,
    "balanced": balanced,
}

def select_assignee(
    candidates: Sequence[TeamMemberMetrics],
    strategy_type: str,
    required_skills: Sequence[str] = (),
) -> AssignmentResult:
    # unknown strategies behave like least-loaded
    strategy = STRATEGIES.get(strategy_type, least_loaded)
    return strategy(candidates, required_skills)
