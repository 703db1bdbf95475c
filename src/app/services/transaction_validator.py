"""Transaction Validator

Enforces the per-kind admission rules before a candidate reaches the log.
Validation dispatches on the transaction kind tag; each kind has one check.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Optional
from libs.result import Error
from src.app.repositories.agent_repository import AgentRepository
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import utcnow
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import TransactionKind
from src.domain.errors import LedgerErrorCode

logger = logging.getLogger(__name__)


@dataclass
class TransactionCandidate:
    """An authenticated event waiting for admission to the log"""
    owner_id: str
    kind: TransactionKind
    credit_kind: CreditKind
    amount: int
    cost_in_native_currency: Optional[Decimal] = None
    external_tx_hash: Optional[str] = None
    agent_id: Optional[str] = None
    operation_label: Optional[str] = None
    from_agent_id: Optional[str] = None
    to_agent_id: Optional[str] = None
    hold: bool = False

    @property
    def debit(self) -> int:
        """Credits this candidate removes from the owner's account (0 for purchases)"""
        if self.kind == TransactionKind.PURCHASE:
            return 0
        return abs(self.amount)


class TransactionValidator:
    """
    Admission rules per transaction kind

    Business Rules:
    1. Sign convention: purchase > 0, usage < 0, transfer != 0
    2. Usage and transfer may not drive the projected balance below zero
       (projected = completed balance + pending debits already admitted)
    3. A purchase's external_tx_hash may appear only once in the log
    4. Transfers move credits between two distinct agents of the same owner

    Must be called while holding the LedgerWriteLock so the projected
    balance it reads cannot change before the candidate is appended.
    """

    def __init__(
        self,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        agent_repo: AgentRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.agent_repo = agent_repo
        self.clock = clock
        self._checks: dict[TransactionKind, Callable[[TransactionCandidate], Awaitable[Optional[Error]]]] = {
            TransactionKind.PURCHASE: self._check_purchase,
            TransactionKind.USAGE: self._check_usage,
            TransactionKind.TRANSFER: self._check_transfer,
        }

    async def validate(self, candidate: TransactionCandidate) -> Optional[Error]:
        """
        Check a candidate against the rules of its kind

        Returns:
            None if the candidate may be admitted, otherwise the rejection Error
        """
        if not candidate.owner_id:
            return self._reject(LedgerErrorCode.INVALID_TRANSACTION, "owner_id is required")

        check = self._checks.get(candidate.kind)
        if check is None:
            return self._reject(
                LedgerErrorCode.INVALID_TRANSACTION,
                f"Unsupported transaction kind {candidate.kind!r}",
            )

        error = await check(candidate)
        if error:
            logger.warning(
                f"Rejected {candidate.kind.value} for owner {candidate.owner_id}: "
                f"{error.code} ({error.message})"
            )
        return error

    async def projected_balance(self, owner_id: str, credit_kind: CreditKind) -> int:
        """Completed balance minus debits that are admitted but still pending"""
        account = await self.account_repo.get(owner_id, credit_kind, for_update=True)
        completed = account.balance if account else 0
        pending_debits = await self.transaction_repo.sum_pending_debits(owner_id, credit_kind)
        return completed + pending_debits

    async def next_timestamp(self) -> datetime:
        """
        Timestamp for the next appended transaction

        Never earlier than the last logged timestamp. When the clock does not
        advance, equal timestamps are ordered by sequence id.
        """
        now = self.clock()
        last = await self.transaction_repo.get_last()
        if last is not None and last.timestamp > now:
            return last.timestamp
        return now

    async def _check_purchase(self, candidate: TransactionCandidate) -> Optional[Error]:
        if candidate.amount <= 0:
            return self._reject(
                LedgerErrorCode.INVALID_AMOUNT_SIGN,
                "Purchase amount must be greater than 0",
                f"amount={candidate.amount}",
            )

        if candidate.cost_in_native_currency is not None and candidate.cost_in_native_currency < 0:
            return self._reject(
                LedgerErrorCode.INVALID_TRANSACTION,
                "cost_in_native_currency cannot be negative",
            )

        if candidate.external_tx_hash:
            existing = await self.transaction_repo.get_by_external_tx_hash(candidate.external_tx_hash)
            if existing:
                return self._reject(
                    LedgerErrorCode.DUPLICATE_EXTERNAL_TX,
                    f"External transaction {candidate.external_tx_hash} already recorded",
                    f"existing_transaction_id={existing.id}",
                )
        return None

    async def _check_usage(self, candidate: TransactionCandidate) -> Optional[Error]:
        if candidate.amount >= 0:
            return self._reject(
                LedgerErrorCode.INVALID_AMOUNT_SIGN,
                "Usage amount must be less than 0",
                f"amount={candidate.amount}",
            )

        if not candidate.agent_id:
            return self._reject(LedgerErrorCode.INVALID_TRANSACTION, "Usage requires agent_id")

        return await self._check_funds(candidate)

    async def _check_transfer(self, candidate: TransactionCandidate) -> Optional[Error]:
        if candidate.amount == 0:
            return self._reject(LedgerErrorCode.INVALID_AMOUNT_SIGN, "Transfer amount cannot be 0")

        if not candidate.from_agent_id or not candidate.to_agent_id:
            return self._reject(
                LedgerErrorCode.INVALID_TRANSACTION,
                "Transfer requires from_agent_id and to_agent_id",
            )

        if candidate.from_agent_id == candidate.to_agent_id:
            return self._reject(
                LedgerErrorCode.INVALID_TRANSFER_TARGET,
                "Cannot transfer credits to the same agent",
                f"agent_id={candidate.from_agent_id}",
            )

        for agent_id in (candidate.from_agent_id, candidate.to_agent_id):
            agent = await self.agent_repo.get_by_agent_id(agent_id)
            if agent is None or agent.owner_id != candidate.owner_id:
                return self._reject(
                    LedgerErrorCode.INVALID_TRANSFER_TARGET,
                    f"Agent {agent_id} does not belong to owner {candidate.owner_id}",
                    "unregistered agent" if agent is None else f"owner={agent.owner_id}",
                )

        return await self._check_funds(candidate)

    async def _check_funds(self, candidate: TransactionCandidate) -> Optional[Error]:
        available = await self.projected_balance(candidate.owner_id, candidate.credit_kind)
        if available - candidate.debit < 0:
            return self._reject(
                LedgerErrorCode.INSUFFICIENT_BALANCE,
                f"Insufficient {candidate.credit_kind.value} credits. "
                f"Required: {candidate.debit}, Available: {available}",
                f"projected_balance={available}, required={candidate.debit}",
            )
        return None

    @staticmethod
    def _reject(code: LedgerErrorCode, message: str, reason: Optional[str] = None) -> Error:
        return Error(code=code.value, message=message, reason=reason)
