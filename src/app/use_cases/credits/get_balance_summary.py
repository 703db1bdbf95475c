"""Get Balance Summary Use Case

Retrieves an owner's current compute and storage balances.
"""

from libs.result import Result, Return
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.credit_account import CreditKind
from .dtos import BalanceSummaryDTO


class GetBalanceSummary:
    """
    Get Balance Summary Use Case

    Read-only. Accounts are created lazily, so an owner without an account
    for a credit kind simply has a balance of 0 for it.
    """

    def __init__(self, account_repo: CreditAccountRepository):
        self.account_repo = account_repo

    async def execute(self, owner_id: str) -> Result[BalanceSummaryDTO]:
        accounts = await self.account_repo.list_by_owner(owner_id)
        balances = {account.credit_kind: account.balance for account in accounts}

        return Return.ok(
            BalanceSummaryDTO(
                owner_id=owner_id,
                compute=balances.get(CreditKind.COMPUTE, 0),
                storage=balances.get(CreditKind.STORAGE, 0),
            )
        )
