import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
import src.domain  # noqa: F401  registers the table models on SQLModel.metadata
from src.adapter.repositories import (
    SqlAlchemyAgentRepository,
    SqlAlchemyCreditAccountRepository,
    SqlAlchemyCreditTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.write_lock import LedgerWriteLock
from src.app.use_cases.credits import (
    ConfirmPurchase,
    ConfirmPurchaseCommandDTO,
    GetBalanceSummary,
    RegisterAgent,
    RegisterAgentCommandDTO,
    SubmitTransaction,
    SubmitTransactionCommandDTO,
)
from src.depends import get_session


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create a throwaway SQLite database for each test"""
    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'ledger_test.db'}"

    engine = create_async_engine(test_db_url, echo=False, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Create test client; every request gets its own session on the test database"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class LedgerHarness:
    """Runs each use case in its own session, the way the API does"""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.write_lock = LedgerWriteLock()

    async def run(self, use_case_class, *args, with_agents=False, **kwargs):
        async with self.session_factory() as session:
            deps = dict(
                uow=SqlAlchemyUnitOfWork(session),
                account_repo=SqlAlchemyCreditAccountRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
                write_lock=self.write_lock,
            )
            if with_agents:
                deps["agent_repo"] = SqlAlchemyAgentRepository(session)
            return await use_case_class(**deps).execute(*args, **kwargs)

    async def submit(self, **fields):
        return await self.run(SubmitTransaction, SubmitTransactionCommandDTO(**fields), with_agents=True)

    async def confirm(self, transaction_id, external_tx_hash):
        return await self.run(
            ConfirmPurchase,
            ConfirmPurchaseCommandDTO(transaction_id=transaction_id, external_tx_hash=external_tx_hash),
        )

    async def buy(self, owner_id, credit_kind, amount, external_tx_hash):
        """Submit and confirm a purchase"""
        submitted = await self.submit(
            owner_id=owner_id,
            kind="purchase",
            credit_kind=credit_kind,
            amount=amount,
            external_tx_hash=external_tx_hash,
        )
        return await self.confirm(submitted.value.transaction_id, external_tx_hash)

    async def register_agent(self, agent_id, owner_id):
        async with self.session_factory() as session:
            use_case = RegisterAgent(SqlAlchemyUnitOfWork(session), SqlAlchemyAgentRepository(session))
            return await use_case.execute(RegisterAgentCommandDTO(agent_id=agent_id, owner_id=owner_id))

    async def balances(self, owner_id):
        async with self.session_factory() as session:
            result = await GetBalanceSummary(SqlAlchemyCreditAccountRepository(session)).execute(owner_id)
            return result.value


@pytest_asyncio.fixture
async def ledger(session_factory):
    return LedgerHarness(session_factory)
