"""Unit tests for SubmitTransaction and BillUsage use cases

Tests cover:
- Purchases admitted pending without touching balances
- Usage completed immediately and debited
- Transfers appended as two legs sharing a group id
- Rejections roll back and write nothing
- Storage failures and duplicate-hash races
"""

import logging
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from sqlalchemy.exc import IntegrityError

from src.app.use_cases.credits.bill_usage import BillUsage
from src.app.use_cases.credits.dtos import BillUsageCommandDTO, SubmitTransactionCommandDTO
from src.app.use_cases.credits.submit_transaction import SubmitTransaction
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import TransactionKind, TransactionStatus
from src.domain.errors import LedgerErrorCode
from tests.unit.factories import NOW, OWNER

COMPUTE = (OWNER, CreditKind.COMPUTE)
STORAGE = (OWNER, CreditKind.STORAGE)


@pytest.fixture
def submit_use_case(
    mock_uow, mock_account_repo, mock_transaction_repo, mock_agent_repo, write_lock, mock_publisher
):
    return SubmitTransaction(
        uow=mock_uow,
        account_repo=mock_account_repo,
        transaction_repo=mock_transaction_repo,
        agent_repo=mock_agent_repo,
        write_lock=write_lock,
        publisher=mock_publisher,
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
class TestSubmitPurchase:

    async def test_purchase_is_admitted_pending(
        self, submit_use_case, mock_account_repo, mock_uow, mock_publisher
    ):
        """
        Given: A valid purchase candidate with a hash
        When: It is submitted
        Then: It is appended pending, balances are untouched, admission is published
        """
        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.PURCHASE,
                credit_kind=CreditKind.STORAGE,
                amount=100,
                cost_in_native_currency=Decimal("0.00001"),
                external_tx_hash="0xabc",
            )
        )

        assert result.is_ok()
        response = result.value
        assert response.status == TransactionStatus.PENDING
        assert response.transactions[0].timestamp == NOW
        assert response.transactions[0].settled_at is None
        assert mock_account_repo.balances == {}
        mock_uow.commit.assert_called_once()
        mock_publisher.publish.assert_called_once()
        assert mock_publisher.publish.call_args.args[0] == "transaction.admitted"

    async def test_invalid_sign_is_rejected_without_writes(
        self, submit_use_case, mock_transaction_repo, mock_uow
    ):
        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER, kind=TransactionKind.PURCHASE, credit_kind=CreditKind.COMPUTE, amount=-1
            )
        )

        assert result.is_err()
        assert result.error.code == LedgerErrorCode.INVALID_AMOUNT_SIGN.value
        mock_transaction_repo.append.assert_not_called()
        mock_uow.commit.assert_not_called()
        mock_uow.rollback.assert_called_once()

    async def test_rejection_is_logged_once(self, submit_use_case, caplog):
        with caplog.at_level(logging.WARNING):
            await submit_use_case.execute(
                SubmitTransactionCommandDTO(
                    owner_id=OWNER, kind=TransactionKind.PURCHASE, credit_kind=CreditKind.COMPUTE, amount=-1
                )
            )

        warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert LedgerErrorCode.INVALID_AMOUNT_SIGN.value in warnings[0].getMessage()

    async def test_duplicate_hash_race_maps_to_duplicate_error(
        self, submit_use_case, mock_transaction_repo, mock_uow
    ):
        """A unique-constraint violation on append is reported as a duplicate hash"""
        mock_transaction_repo.append = AsyncMock(
            side_effect=IntegrityError(
                "INSERT", {}, Exception("UNIQUE constraint failed: credit_transactions.external_tx_hash")
            )
        )

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.PURCHASE,
                credit_kind=CreditKind.COMPUTE,
                amount=10,
                external_tx_hash="0xdup",
            )
        )

        assert result.error.code == LedgerErrorCode.DUPLICATE_EXTERNAL_TX.value
        mock_uow.rollback.assert_called_once()

    async def test_other_constraint_violation_is_not_a_duplicate(
        self, submit_use_case, mock_transaction_repo, mock_uow
    ):
        mock_transaction_repo.append = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("CHECK constraint failed: balance_non_negative"))
        )

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.PURCHASE,
                credit_kind=CreditKind.COMPUTE,
                amount=10,
                external_tx_hash="0xfresh",
            )
        )

        assert result.error.code == LedgerErrorCode.STORAGE_FAILURE.value
        mock_uow.rollback.assert_called_once()

    async def test_unexpected_error_is_storage_failure(
        self, submit_use_case, mock_transaction_repo, mock_uow, mock_publisher
    ):
        mock_transaction_repo.append = AsyncMock(side_effect=RuntimeError("connection lost"))

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER, kind=TransactionKind.PURCHASE, credit_kind=CreditKind.COMPUTE, amount=10
            )
        )

        assert result.error.code == LedgerErrorCode.STORAGE_FAILURE.value
        assert result.error.reason == "connection lost"
        mock_uow.commit.assert_not_called()
        mock_publisher.publish.assert_not_called()


@pytest.mark.asyncio
class TestSubmitUsage:

    async def test_usage_completes_and_debits(self, submit_use_case, mock_account_repo, mock_publisher):
        mock_account_repo.balances[COMPUTE] = 100

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.USAGE,
                credit_kind=CreditKind.COMPUTE,
                amount=-30,
                agent_id="agent_a",
                operation_label="Text analysis",
            )
        )

        assert result.is_ok()
        assert result.value.status == TransactionStatus.COMPLETED
        assert result.value.transactions[0].settled_at == NOW
        assert mock_account_repo.balances[COMPUTE] == 70
        assert mock_publisher.publish.call_args.args[0] == "transaction.completed"

    async def test_held_usage_stays_pending(self, submit_use_case, mock_account_repo):
        mock_account_repo.balances[COMPUTE] = 100

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.USAGE,
                credit_kind=CreditKind.COMPUTE,
                amount=-30,
                agent_id="agent_a",
                hold=True,
            )
        )

        assert result.value.status == TransactionStatus.PENDING
        assert mock_account_repo.balances[COMPUTE] == 100

    async def test_overdraw_is_rejected(self, submit_use_case, mock_account_repo, mock_transaction_repo):
        mock_account_repo.balances[COMPUTE] = 10

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.USAGE,
                credit_kind=CreditKind.COMPUTE,
                amount=-11,
                agent_id="agent_a",
            )
        )

        assert result.error.code == LedgerErrorCode.INSUFFICIENT_BALANCE.value
        assert mock_account_repo.balances[COMPUTE] == 10
        mock_transaction_repo.append.assert_not_called()


@pytest.mark.asyncio
class TestSubmitTransfer:

    async def test_transfer_appends_two_linked_legs(
        self, submit_use_case, mock_account_repo, mock_transaction_repo, mock_publisher
    ):
        """
        Given: Owner has 100 compute credits and two registered agents
        When: 40 credits are transferred from agent_a to agent_b
        Then: A debit and a credit leg share the debit leg's id; the owner total is unchanged
        """
        mock_account_repo.balances[COMPUTE] = 100

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.TRANSFER,
                credit_kind=CreditKind.COMPUTE,
                amount=40,
                from_agent_id="agent_a",
                to_agent_id="agent_b",
            )
        )

        assert result.is_ok()
        debit, credit = result.value.transactions
        assert (debit.amount, credit.amount) == (-40, 40)
        assert debit.transfer_group_id == credit.transfer_group_id == debit.id
        assert result.value.transaction_id == debit.id
        assert sum(t.amount for t in result.value.transactions) == 0
        assert mock_account_repo.balances[COMPUTE] == 100
        mock_transaction_repo.append_many.assert_called_once()
        assert mock_publisher.publish.call_count == 2

    async def test_transfer_to_foreign_agent_is_rejected(self, submit_use_case, mock_account_repo):
        mock_account_repo.balances[COMPUTE] = 100

        result = await submit_use_case.execute(
            SubmitTransactionCommandDTO(
                owner_id=OWNER,
                kind=TransactionKind.TRANSFER,
                credit_kind=CreditKind.COMPUTE,
                amount=40,
                from_agent_id="agent_a",
                to_agent_id="agent_x",
            )
        )

        assert result.error.code == LedgerErrorCode.INVALID_TRANSFER_TARGET.value


@pytest.mark.asyncio
class TestBillUsage:

    async def test_bills_magnitude_as_negative_usage(
        self, mock_uow, mock_account_repo, mock_transaction_repo, mock_agent_repo, write_lock
    ):
        mock_account_repo.balances[STORAGE] = 50
        use_case = BillUsage(
            mock_uow, mock_account_repo, mock_transaction_repo, mock_agent_repo, write_lock, clock=lambda: NOW
        )

        result = await use_case.execute(
            BillUsageCommandDTO(
                owner_id=OWNER,
                agent_id="agent_a",
                credit_kind=CreditKind.STORAGE,
                amount=20,
                operation_label="Image generation",
            )
        )

        transaction = result.value.transactions[0]
        assert transaction.kind == TransactionKind.USAGE
        assert transaction.amount == -20
        assert transaction.operation_label == "Image generation"
        assert mock_account_repo.balances[STORAGE] == 30

    async def test_declines_when_balance_is_short(
        self, mock_uow, mock_account_repo, mock_transaction_repo, mock_agent_repo, write_lock
    ):
        use_case = BillUsage(mock_uow, mock_account_repo, mock_transaction_repo, mock_agent_repo, write_lock)

        result = await use_case.execute(
            BillUsageCommandDTO(owner_id=OWNER, agent_id="agent_a", credit_kind=CreditKind.COMPUTE, amount=1)
        )

        assert result.error.code == LedgerErrorCode.INSUFFICIENT_BALANCE.value
