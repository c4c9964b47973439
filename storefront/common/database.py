from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from .config import settings
from .db import Base
# Imported for their side effect of registering tables on Base.metadata
from ..identity import model as _identity_model  # noqa: F401
from ..products import model as _products_model  # noqa: F401
from ..orders import model as _orders_model  # noqa: F401


# Async SQLAlchemy engine and session factory
engine = create_async_engine(settings.DB_URL, future=True, echo=settings.DB_ECHO)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
