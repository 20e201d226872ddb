from fastapi import APIRouter
from app.modules.routing.router import router as routing_router
from app.modules.assignment.router import router as assignment_router
from app.modules.tickets.router import router as tickets_router

api_router = APIRouter()
api_router.include_router(routing_router, prefix="/routing", tags=["routing"])
api_router.include_router(assignment_router, prefix="/assignment", tags=["assignment"])
api_router.include_router(tickets_router, tags=["tickets"])
# tickets_router already carries its /tickets paths

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
