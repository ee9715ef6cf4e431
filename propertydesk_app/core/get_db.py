import logging
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .settings import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one backing store.

    Opened once at process start (``connect``) and closed at shutdown
    (``dispose``). Components never touch the engine directly; they get an
    ``AsyncSession`` per request or per side-effect.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = url
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    def connect(self) -> "Database":
        if self.engine is not None:
            return self

        kwargs = dict(self.engine_kwargs)
        if not self.url.startswith("sqlite"):
            kwargs.setdefault("pool_pre_ping", True)

        self.engine = create_async_engine(self.url, echo=self.echo, **kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created for %s", self.engine.url.render_as_string())
        return self

    async def dispose(self):
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        logger.info("Database engine disposed")

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            raise RuntimeError("Database is not connected")
        return self.session_factory()


database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


async def get_db_async() -> AsyncIterator[AsyncSession]:
    session = database.session()
    try:
        yield session
    finally:
        await session.close()
