"""HTTP error mapping for use case results"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error
from src.domain.errors import LedgerErrorCode

STATUS_BY_CODE = {
    LedgerErrorCode.INSUFFICIENT_BALANCE.value: status.HTTP_402_PAYMENT_REQUIRED,
    LedgerErrorCode.DUPLICATE_EXTERNAL_TX.value: status.HTTP_409_CONFLICT,
    LedgerErrorCode.INVALID_STATE_TRANSITION.value: status.HTTP_409_CONFLICT,
    LedgerErrorCode.EXTERNAL_TX_MISMATCH.value: status.HTTP_409_CONFLICT,
    LedgerErrorCode.AGENT_ALREADY_REGISTERED.value: status.HTTP_409_CONFLICT,
    LedgerErrorCode.TRANSACTION_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    LedgerErrorCode.AGENT_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    LedgerErrorCode.STORAGE_FAILURE.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ClientError(Exception):
    """Raised by routes to turn a use case Error into an HTTP response"""

    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code

    @classmethod
    def from_error(cls, error: Error) -> "ClientError":
        return cls(error, status_code=STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST))


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    body = {"code": exc.error.code, "message": exc.error.message}
    if exc.error.reason:
        body["reason"] = exc.error.reason
    return JSONResponse(status_code=exc.status_code, content={"error": body})
