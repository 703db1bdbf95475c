"""Balance Projector

Maintains the derived balance table from the transaction log, either
incrementally as transactions complete or by replaying the log.
"""

import logging
from typing import Callable, Iterable, Optional
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus

logger = logging.getLogger(__name__)

AccountKey = tuple[str, CreditKind]
Balances = dict[AccountKey, int]


class NegativeBalanceError(Exception):
    """Raised when applying a transaction would drive an account below zero"""

    def __init__(self, key: AccountKey, balance: int, delta: int):
        self.key = key
        self.balance = balance
        self.delta = delta
        super().__init__(
            f"Account {key[0]}/{key[1].value} would go negative: balance={balance}, delta={delta}"
        )


# Signed delta each kind contributes to its owner's account once completed.
# Transfer legs carry their own sign: the debit leg is negative, the credit leg positive.
_DELTA_RULES: dict[TransactionKind, Callable[[CreditTransaction], int]] = {
    TransactionKind.PURCHASE: lambda txn: abs(txn.amount),
    TransactionKind.USAGE: lambda txn: -abs(txn.amount),
    TransactionKind.TRANSFER: lambda txn: txn.amount,
}


def balance_deltas(transaction: CreditTransaction) -> Balances:
    """Balance change a transaction contributes; empty unless it is completed"""
    if transaction.status != TransactionStatus.COMPLETED:
        return {}
    return {transaction.account_key: _DELTA_RULES[transaction.kind](transaction)}


def fold_balances(transactions: Iterable[CreditTransaction], base: Optional[Balances] = None) -> Balances:
    """Fold completed transactions onto base balances (base is not modified)"""
    balances = dict(base or {})
    for transaction in transactions:
        _accumulate(balances, transaction)
    return balances


def _accumulate(balances: Balances, transaction: CreditTransaction) -> None:
    for key, delta in balance_deltas(transaction).items():
        balances[key] = balances.get(key, 0) + delta


class BalanceProjector:
    """
    Projection of the log onto the credit_accounts table

    Business Rules:
    1. Only completed transactions affect balances
    2. All transactions passed to one apply() call land in the same unit of
       work, so both legs of a transfer become visible together
    3. No account balance may become negative
    4. replay() over a log prefix equals the incrementally maintained table
    """

    def __init__(
        self,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo

    async def apply(self, *transactions: CreditTransaction) -> Balances:
        """
        Apply completed transactions to the balance table

        Caller commits the surrounding unit of work.

        Returns:
            New balances of the touched accounts

        Raises:
            NegativeBalanceError: If an account would drop below zero
        """
        deltas = fold_balances(transactions)
        updated: Balances = {}

        for key in sorted(deltas):
            owner_id, credit_kind = key
            account = await self.account_repo.get_or_create(owner_id, credit_kind, for_update=True)
            new_balance = account.balance + deltas[key]
            if new_balance < 0:
                raise NegativeBalanceError(key, account.balance, deltas[key])
            await self.account_repo.update_balance(account, new_balance)
            updated[key] = new_balance

        return updated

    async def current_balance(self, owner_id: str, credit_kind: CreditKind) -> int:
        account = await self.account_repo.get(owner_id, credit_kind)
        return account.balance if account else 0

    async def snapshot(self) -> Balances:
        """Balances as currently stored in the table"""
        accounts = await self.account_repo.get_all()
        return {account.key: account.balance for account in accounts}

    async def replay(self, from_id: int = 1, base: Optional[Balances] = None) -> Balances:
        """
        Rebuild balances by folding the log

        Args:
            from_id: First sequence id to fold
            base: Balances to start from (empty for a full replay)

        Returns:
            Balances keyed by (owner_id, credit_kind)
        """
        balances = dict(base or {})
        async for transaction in self.transaction_repo.scan(
            predicate=lambda txn: txn.status == TransactionStatus.COMPLETED,
            from_id=from_id,
        ):
            _accumulate(balances, transaction)
        return balances

    async def rebuild(self) -> Balances:
        """
        Bring the balance table in line with a full replay of the log

        Used for recovery. Account rows are locked before the log is read and
        each correction is applied as a delta, so a repair running in another
        process never overwrites a balance another writer committed meanwhile.
        Caller holds the write lock and commits.
        """
        accounts = {account.key: account for account in await self.account_repo.get_all(for_update=True)}
        replayed = await self.replay()

        for key in sorted(set(accounts) | set(replayed)):
            account = accounts.get(key)
            stored = account.balance if account else 0
            drift = replayed.get(key, 0) - stored
            if drift == 0:
                continue

            logger.warning(
                f"Rebuilding account {key[0]}/{key[1].value}: {stored} -> {replayed.get(key, 0)}"
            )
            if account is None:
                account = await self.account_repo.get_or_create(key[0], key[1], for_update=True)
            await self.account_repo.adjust_balance(account, drift)

        return replayed
