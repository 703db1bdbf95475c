"""Background workers for the credit ledger"""
from .ledger_reconciler import LedgerReconcilerWorker
from .pending_purchase_expirer import PendingPurchaseExpirerWorker, ExpiryResultDTO

__all__ = ["LedgerReconcilerWorker", "PendingPurchaseExpirerWorker", "ExpiryResultDTO"]
