from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.write_lock import LedgerWriteLock

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_write_lock(request: Request) -> LedgerWriteLock:
    return request.app.state.write_lock


def get_publisher(request: Request) -> TransactionEventPublisher:
    return request.app.state.publisher
