import logging
from fastapi import APIRouter, Depends, HTTPException, status
from app.api.deps import get_assignment_engine
from app.core.security import require_scopes
from app.modules.assignment.engine import AssignmentEngine
from app.modules.assignment.schemas import AssignRequest, AssignmentResult, TeamWorkloadStats

log = logging.getLogger("assignment.router")

router = APIRouter()

@router.post("/assign", response_model=AssignmentResult, dependencies=[Depends(require_scopes("assignment:write"))])
async def assign_ticket(
    payload: AssignRequest,
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    return await engine.assign_ticket(payload.team_id, payload.ticket_id, payload.strategy, payload.required_skills)

@router.get("/teams/{team_id}/workload", response_model=TeamWorkloadStats, dependencies=[Depends(require_scopes("assignment:read"))])
async def team_workload(
    team_id: str,
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    try:
        return await engine.get_team_workload_stats(team_id)
    except Exception:
        log.exception(f"Workload stats unavailable for team {team_id}")
        raise HTTPException(status_code=502, detail="Team workload data unavailable")

@router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("assignment:write"))])
async def clear_metrics_cache(engine: AssignmentEngine = Depends(get_assignment_engine)):
    engine.clear_cache()
