from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from app.core.config import settings
from app.models.base import Base

engine_args = {"echo": False, "pool_pre_ping": True}

if "sqlite" not in settings.SQLALCHEMY_DATABASE_URI:
    engine_args.update({"pool_size": 5, "max_overflow": 5, "pool_recycle": 300})

engine = create_async_engine(settings.SQLALCHEMY_DATABASE_URI, **engine_args)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def enable_sqlite_pragmas(target_engine) -> None:
    """WAL + busy timeout so concurrent writers queue instead of failing fast."""

    @event.listens_for(target_engine.sync_engine, "connect")
    def _set_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


if "sqlite" in settings.SQLALCHEMY_DATABASE_URI:
    enable_sqlite_pragmas(engine)


async def init_models(target_engine=None) -> None:
    import app.models  # noqa: F401  (registers every table on Base.metadata)

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
