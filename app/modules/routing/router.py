from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from app.api.deps import get_routing_engine, get_rules_manager, get_rules_service
from app.core.security import require_scopes
from app.modules.routing.engine import RoutingEngine
from app.modules.routing.rules import RulesManager
from app.modules.routing.schemas import (
    FeedbackCreate, RouteRequest, RoutingFeedback, RoutingResult, RoutingRule,
    RuleCreate, RuleFromTemplate, RuleTemplate, RuleUpdate, RuleValidation,
)
from app.modules.routing.service import RulesService

router = APIRouter()

def _errors(e: ValidationError) -> list:
    return jsonable_encoder(e.errors(include_url=False, include_context=False))

# ---- Routing ----

@router.post("/route", response_model=RoutingResult, dependencies=[Depends(require_scopes("routing:read"))])
async def route_ticket(
    payload: RouteRequest,
    engine: RoutingEngine = Depends(get_routing_engine),
):
    return await engine.route_ticket(payload.ticket, payload.content)

@router.post("/feedback", response_model=RoutingFeedback, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_scopes("routing:write"))])
async def record_feedback(
    payload: FeedbackCreate,
    service: RulesService = Depends(get_rules_service),
):
    obj = await service.record_feedback(payload)
    if not obj:
        raise HTTPException(status_code=404, detail="Rule not found")
    return obj

@router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("routing:write"))])
async def clear_rules_cache(engine: RoutingEngine = Depends(get_routing_engine)):
    engine.clear_cache()

# ---- Templates ----

@router.get("/templates", response_model=dict[str, RuleTemplate], dependencies=[Depends(require_scopes("routing:read"))])
async def list_templates(manager: RulesManager = Depends(get_rules_manager)):
    return manager.list_templates()

# ---- Rules ----

@router.get("/rules", response_model=list[RoutingRule], dependencies=[Depends(require_scopes("routing:read"))])
async def list_rules(
    active_only: bool = Query(default=True),
    manager: RulesManager = Depends(get_rules_manager),
):
    return manager.get_all_rules(active_only=active_only)

@router.post("/rules", response_model=RoutingRule, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_scopes("routing:write"))])
async def create_rule(
    payload: RuleCreate,
    service: RulesService = Depends(get_rules_service),
):
    return await service.create_custom_rule(payload)

@router.post("/rules/from-template", response_model=RoutingRule, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_scopes("routing:write"))])
async def create_rule_from_template(
    payload: RuleFromTemplate,
    service: RulesService = Depends(get_rules_service),
):
    try:
        obj = await service.create_from_template(payload.template_id, payload.overrides)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_errors(e))
    if not obj:
        raise HTTPException(status_code=404, detail="Template not found")
    return obj

@router.post("/rules/validate", response_model=RuleValidation, dependencies=[Depends(require_scopes("routing:read"))])
async def validate_rule(
    payload: RoutingRule,
    manager: RulesManager = Depends(get_rules_manager),
):
    return manager.validate_rule(payload)

@router.get("/rules/{rule_id}", response_model=RoutingRule, dependencies=[Depends(require_scopes("routing:read"))])
async def get_rule(
    rule_id: str,
    manager: RulesManager = Depends(get_rules_manager),
):
    obj = manager.get_rule(rule_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Rule not found")
    return obj

@router.patch("/rules/{rule_id}", response_model=RoutingRule, dependencies=[Depends(require_scopes("routing:write"))])
async def update_rule(
    rule_id: str,
    payload: RuleUpdate,
    service: RulesService = Depends(get_rules_service),
):
    try:
        obj = await service.update_rule(rule_id, payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_errors(e))
    if not obj:
        raise HTTPException(status_code=404, detail="Rule not found")
    return obj

@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_scopes("routing:write"))])
async def delete_rule(
    rule_id: str,
    service: RulesService = Depends(get_rules_service),
):
    if not await service.delete_rule(rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
