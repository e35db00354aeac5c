"""
Gateway error types.
"""


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RequestCancelledError(GatewayError):
    """Raised when a request's cancellation token fires (usually its timeout)."""

    def __init__(self, message: str = "Request cancelled", timeout: float | None = None):
        super().__init__(message)
        self.timeout = timeout


class QueueClearedError(GatewayError):
    """Raised for pending queue tasks dropped by ``RequestQueue.clear()``."""

    def __init__(self, message: str = "Queue cleared"):
        super().__init__(message)


class BackendError(GatewayError):
    """Raised when the model backend reports a failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def is_cancellation(error: BaseException) -> bool:
    """Check whether an error represents a timeout-driven cancellation.

    Backends may surface cancellation with their own exception types, so the
    message is inspected as well.
    """
    if isinstance(error, RequestCancelledError):
        return True
    return "cancelled" in str(error).lower()
