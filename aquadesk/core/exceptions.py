"""
Domain errors raised by the service layer.

Every mutating service call either commits the order and the ledger change
together or rolls back and raises one of these. None of them is retried
automatically; ConcurrencyConflictError is the one the caller is expected to
recover from by re-reading and resubmitting.
"""


class AquaDeskError(Exception):
    status_code = 400
    error_code = "AQUADESK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AquaDeskError):
    status_code = 404
    error_code = "NOT_FOUND"


class InvalidStateTransitionError(AquaDeskError):
    status_code = 409
    error_code = "INVALID_STATE_TRANSITION"


class MissingRiderError(AquaDeskError):
    status_code = 400
    error_code = "MISSING_RIDER"


class InvalidAmountError(AquaDeskError):
    status_code = 400
    error_code = "INVALID_AMOUNT"


class ClosingPreconditionFailedError(AquaDeskError):
    status_code = 409
    error_code = "CLOSING_PRECONDITION_FAILED"


class ConcurrencyConflictError(AquaDeskError):
    status_code = 409
    error_code = "CONCURRENCY_CONFLICT"
