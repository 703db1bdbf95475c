"""Credit ledger use cases"""
from .submit_transaction import SubmitTransaction
from .bill_usage import BillUsage
from .confirm_purchase import ConfirmPurchase
from .fail_purchase import FailPurchase
from .settle_usage import SettleUsage, ReleaseUsage
from .get_transaction import GetTransaction
from .list_history import ListHistory
from .get_balance_summary import GetBalanceSummary
from .get_credit_analytics import GetCreditAnalytics
from .get_agent_allocations import GetAgentAllocations, DEFAULT_LOOKBACK_DAYS
from .quote_purchase import QuotePurchase, CREDIT_PACKAGES, DEFAULT_CREDIT_PRICES
from .register_agent import RegisterAgent, GetAgent
from .reconcile_balances import ReconcileBalances
from .dtos import (
    SubmitTransactionCommandDTO,
    BillUsageCommandDTO,
    ConfirmPurchaseCommandDTO,
    FailTransactionCommandDTO,
    TransactionDTO,
    SubmitTransactionResponseDTO,
    HistoryFilterDTO,
    ListHistoryResponseDTO,
    BalanceSummaryDTO,
    CreditKindTotalsDTO,
    DailyConsumptionDTO,
    CreditAnalyticsDTO,
    AgentAllocationDTO,
    AgentAllocationsDTO,
    QuoteCommandDTO,
    QuoteResponseDTO,
    RegisterAgentCommandDTO,
    AgentResponseDTO,
    AccountDiscrepancyDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "SubmitTransaction",
    "BillUsage",
    "ConfirmPurchase",
    "FailPurchase",
    "SettleUsage",
    "ReleaseUsage",
    "GetTransaction",
    "ListHistory",
    "GetBalanceSummary",
    "GetCreditAnalytics",
    "GetAgentAllocations",
    "DEFAULT_LOOKBACK_DAYS",
    "QuotePurchase",
    "CREDIT_PACKAGES",
    "DEFAULT_CREDIT_PRICES",
    "RegisterAgent",
    "GetAgent",
    "ReconcileBalances",
    "SubmitTransactionCommandDTO",
    "BillUsageCommandDTO",
    "ConfirmPurchaseCommandDTO",
    "FailTransactionCommandDTO",
    "TransactionDTO",
    "SubmitTransactionResponseDTO",
    "HistoryFilterDTO",
    "ListHistoryResponseDTO",
    "BalanceSummaryDTO",
    "CreditKindTotalsDTO",
    "DailyConsumptionDTO",
    "CreditAnalyticsDTO",
    "AgentAllocationDTO",
    "AgentAllocationsDTO",
    "QuoteCommandDTO",
    "QuoteResponseDTO",
    "RegisterAgentCommandDTO",
    "AgentResponseDTO",
    "AccountDiscrepancyDTO",
    "ReconciliationResultDTO",
]
