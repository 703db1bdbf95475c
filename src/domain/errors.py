"""Error codes returned by ledger use cases"""

from enum import Enum


class LedgerErrorCode(str, Enum):
    # Validation: rejected before admission, caller corrects the input
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    DUPLICATE_EXTERNAL_TX = "DUPLICATE_EXTERNAL_TX"
    INVALID_TRANSFER_TARGET = "INVALID_TRANSFER_TARGET"
    INVALID_AMOUNT_SIGN = "INVALID_AMOUNT_SIGN"
    INVALID_TRANSACTION = "INVALID_TRANSACTION"

    # Integration errors: fatal to the calling operation, not to the ledger
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    EXTERNAL_TX_MISMATCH = "EXTERNAL_TX_MISMATCH"

    AGENT_ALREADY_REGISTERED = "AGENT_ALREADY_REGISTERED"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    UNKNOWN_PACKAGE = "UNKNOWN_PACKAGE"

    # Nothing committed, caller retries the whole operation
    STORAGE_FAILURE = "STORAGE_FAILURE"

