"""Shared fixtures for unit tests"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.write_lock import LedgerWriteLock
from src.domain.agent import AgentRegistration
from src.domain.credit_account import CreditAccount
from tests.unit.factories import NOW, OWNER


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def write_lock():
    return LedgerWriteLock()


@pytest.fixture
def mock_publisher():
    publisher = MagicMock()
    publisher.publish = AsyncMock(return_value=True)
    return publisher


@pytest.fixture
def mock_account_repo():
    """Account repository backed by a dict of balances (repo.balances)"""
    repo = MagicMock()
    repo.balances = {}

    def account(owner_id, credit_kind):
        return CreditAccount(
            id=1,
            owner_id=owner_id,
            credit_kind=credit_kind,
            balance=repo.balances.get((owner_id, credit_kind), 0),
        )

    async def get(owner_id, credit_kind, for_update=False):
        if (owner_id, credit_kind) not in repo.balances:
            return None
        return account(owner_id, credit_kind)

    async def get_or_create(owner_id, credit_kind, for_update=False):
        repo.balances.setdefault((owner_id, credit_kind), 0)
        return account(owner_id, credit_kind)

    async def update_balance(acc, new_balance):
        repo.balances[acc.key] = new_balance

    async def adjust_balance(acc, delta):
        repo.balances[acc.key] = repo.balances.get(acc.key, 0) + delta

    async def get_all(for_update=False):
        return [account(owner_id, kind) for owner_id, kind in repo.balances]

    repo.get = AsyncMock(side_effect=get)
    repo.get_or_create = AsyncMock(side_effect=get_or_create)
    repo.update_balance = AsyncMock(side_effect=update_balance)
    repo.adjust_balance = AsyncMock(side_effect=adjust_balance)
    repo.get_all = AsyncMock(side_effect=get_all)
    return repo


@pytest.fixture
def mock_transaction_repo():
    """Transaction repository with an empty log that assigns ids on append"""
    repo = MagicMock()
    ids = iter(range(1, 10_000))

    async def append(transaction):
        transaction.id = next(ids)
        return transaction

    async def append_many(transactions):
        return [await append(t) for t in transactions]

    async def save(transaction):
        return transaction

    async def transition(transaction, expected, **values):
        if transaction.status != expected:
            return False
        for field, value in values.items():
            setattr(transaction, field, value)
        return True

    repo.append = AsyncMock(side_effect=append)
    repo.append_many = AsyncMock(side_effect=append_many)
    repo.save = AsyncMock(side_effect=save)
    repo.transition = AsyncMock(side_effect=transition)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.get_by_external_tx_hash = AsyncMock(return_value=None)
    repo.get_last = AsyncMock(return_value=None)
    repo.sum_pending_debits = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_agent_repo():
    """Agent registry: agent_a and agent_b belong to OWNER, agent_x to someone else"""
    repo = MagicMock()
    agents = {
        "agent_a": AgentRegistration(id=1, agent_id="agent_a", owner_id=OWNER, registered_at=NOW),
        "agent_b": AgentRegistration(id=2, agent_id="agent_b", owner_id=OWNER, registered_at=NOW),
        "agent_x": AgentRegistration(id=3, agent_id="agent_x", owner_id="0xother", registered_at=NOW),
    }

    async def get_by_agent_id(agent_id):
        return agents.get(agent_id)

    repo.get_by_agent_id = AsyncMock(side_effect=get_by_agent_id)

    async def list_by_owner(owner_id):
        return sorted((a for a in agents.values() if a.owner_id == owner_id), key=lambda a: a.agent_id)

    repo.list_by_owner = AsyncMock(side_effect=list_by_owner)
    return repo
