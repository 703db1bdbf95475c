"""
Quote Purchase Use Case

Prices a credit purchase from the static per-credit price table, without
touching the ledger.
"""
from decimal import Decimal
from typing import Optional
from libs.result import Result, Return, Error
from src.domain.credit_account import CreditKind
from src.domain.errors import LedgerErrorCode
from .dtos import QuoteCommandDTO, QuoteResponseDTO


# Native currency per credit. Overridden from ApplicationConfig at wiring time.
DEFAULT_CREDIT_PRICES: dict[CreditKind, Decimal] = {
    CreditKind.COMPUTE: Decimal("0.000001"),
    CreditKind.STORAGE: Decimal("0.0000001"),
}

# Bundles offered on the purchase page: (compute credits, storage credits)
CREDIT_PACKAGES: dict[str, tuple[int, int]] = {
    "starter": (50, 200),
    "pro": (200, 800),
    "enterprise": (1000, 4000),
}


class QuotePurchase:
    """
    Use case: Quote the native-currency cost of credits

    The quote is what the wallet layer charges on-chain; the resulting
    purchase is submitted separately with cost_in_native_currency set.
    """

    def __init__(
        self,
        prices: Optional[dict[CreditKind, Decimal]] = None,
        packages: Optional[dict[str, tuple[int, int]]] = None,
    ):
        self.prices = prices or DEFAULT_CREDIT_PRICES
        self.packages = packages or CREDIT_PACKAGES

    async def execute(self, command: QuoteCommandDTO) -> Result[QuoteResponseDTO]:
        package = command.package.lower() if command.package else None

        if package is not None:
            if package not in self.packages:
                return Return.err(
                    Error(
                        code=LedgerErrorCode.UNKNOWN_PACKAGE.value,
                        message=f"Unknown credit package {command.package!r}",
                        reason=f"available={sorted(self.packages)}",
                    )
                )
            compute, storage = self.packages[package]
        else:
            compute, storage = command.compute_credits, command.storage_credits

        compute_cost = self.prices[CreditKind.COMPUTE] * compute
        storage_cost = self.prices[CreditKind.STORAGE] * storage

        return Return.ok(
            QuoteResponseDTO(
                package=package,
                compute_credits=compute,
                storage_credits=storage,
                compute_cost=compute_cost,
                storage_cost=storage_cost,
                total_cost=compute_cost + storage_cost,
            )
        )
