from fastapi import Depends, Request
from app.modules.assignment.engine import AssignmentEngine
from app.modules.routing.engine import RoutingEngine
from app.modules.routing.rules import RulesManager
from app.modules.routing.service import RulesService
from app.platform.provider_registry import ProviderRegistry

def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry

def get_rules_manager(registry: ProviderRegistry = Depends(get_registry)) -> RulesManager:
    return registry.rules_manager()

def get_routing_engine(registry: ProviderRegistry = Depends(get_registry)) -> RoutingEngine:
    return registry.routing_engine()

def get_assignment_engine(registry: ProviderRegistry = Depends(get_registry)) -> AssignmentEngine:
    return registry.assignment_engine()

async def get_rules_service(registry: ProviderRegistry = Depends(get_registry)):
    manager, engine = registry.rules_manager(), registry.routing_engine()
    if registry.settings.RULES_PROVIDER != "postgres":
        yield RulesService(manager, engine)
        return
    from app.core.db import SessionLocal
    async with SessionLocal() as session:
        yield RulesService(manager, engine, session)
