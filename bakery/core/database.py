from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from bakery.config import settings
from bakery.core.events import discard_pending, publish_pending


class Base(DeclarativeBase):
    pass


def make_engine(url: str):
    # SQLite (тесты, локальный запуск) — без пула: соединение не переживает event loop.
    if url.startswith("sqlite"):
        return create_async_engine(url, poolclass=NullPool)
    return create_async_engine(url, pool_pre_ping=True)


def session_dependency(maker: async_sessionmaker):
    """Зависимость FastAPI: commit при успехе, rollback при любой ошибке.
    Сигналы об изменениях рассылаются только после commit."""

    async def _get_db():
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_pending(session)
                raise
            publish_pending(session)

    return _get_db


engine = make_engine(settings.database_url)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)
get_db = session_dependency(async_session_maker)


def get_session_maker() -> async_sessionmaker:
    """Фабрика сессий для зависимостей, которым нужна короткая сессия (до начала потока)."""
    return async_session_maker


def supports_row_locks(session: AsyncSession) -> bool:
    """SELECT ... FOR UPDATE есть у PostgreSQL, у SQLite — нет."""
    return session.get_bind().dialect.name != "sqlite"
