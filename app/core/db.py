from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings

engine = create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

async def init_models():
    ## In dev-only "create_all" mode, create tables directly; otherwise, migrations own the schema.
    if settings.DB_MANAGE == "create_all":
        from .base import Base
        # register every table on Base.metadata
        import app.modules.tickets.models  # noqa: F401
        import app.modules.assignment.models  # noqa: F401
        import app.modules.routing.models  # noqa: F401
        import app.modules.events.outbox  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
