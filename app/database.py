from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from app.config import settings

engine_options = {"echo": settings.DEBUG}
if settings.TESTING:
    engine_options["poolclass"] = NullPool

async_engine = create_async_engine(settings.DATABASE_URL, **engine_options)
AsyncSessionLocal = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

async def create_tables():
    from app.models.base import Base
    from app.models import user, message

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
