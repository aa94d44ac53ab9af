from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from lookup_gateway.db.base import Base


def create_session_factory(database_url: str) -> tuple[AsyncEngine, async_sessionmaker]:
    engine: AsyncEngine = create_async_engine(database_url)
    session_factory = async_sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    return engine, session_factory


async def init_db(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
