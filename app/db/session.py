from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # Local/dev store; the pool options below are for networked databases
        return create_async_engine(url, echo=False, future=True)
    # pool_pre_ping: check connection is alive before use.
    # pool_recycle: discard connections after this many seconds.
    return create_async_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create missing tables. Deployments with a managed schema skip this."""
    import app.core.models  # noqa: F401  registers tables on Base.metadata

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
