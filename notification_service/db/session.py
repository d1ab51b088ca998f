from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from notification_service.core.config import settings

database_url = make_url(settings.database_url)

engine = create_async_engine(
    database_url.render_as_string(hide_password=False),
    echo=False,
    pool_pre_ping=settings.database_pool_pre_ping,
    poolclass=NullPool,
)

AsyncSessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionFactory() as session:
        try:
            yield session
        finally:
            await session.close()
