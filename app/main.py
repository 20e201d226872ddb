import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from app.core.config import settings
from app.core.logging import setup_logging, request_id_ctx
from app.api.router import api_router
from app.core.db import init_models, SessionLocal
from app.modules.events.outbox import run_outbox_relay
from app.modules.routing.service import hydrate_rules
from app.platform.provider_registry import ProviderRegistry
import asyncio
import logging


setup_logging()
app = FastAPI(title=settings.APP_NAME)
app.state.registry = ProviderRegistry(settings)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    request_id_ctx.set(rid)
    response = await call_next(request)
    return response


logger = logging.getLogger(__name__)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    formatted_process_time = f"{process_time:.2f}ms"

    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
    )

    return response

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "An internal server error occurred."},
    )


@app.on_event("startup")
async def on_startup():
    registry: ProviderRegistry = app.state.registry
    await init_models()
    if settings.RULES_PROVIDER == "postgres":
        async with SessionLocal() as session:
            count = await hydrate_rules(registry.rules_manager(), session, settings.SEED_DEFAULT_RULES)
        logger.info(f"Loaded {count} routing rules from Postgres")
    app.state.outbox_task = asyncio.create_task(
        run_outbox_relay(registry.event_bus(), SessionLocal, topic=settings.REDIS_STREAM or "helpdesk.events")
    )

@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "outbox_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    bus = app.state.registry.event_bus()
    close = getattr(bus, "close", None)
    if close:
        await close()


app.include_router(api_router, prefix=settings.API_PREFIX)
