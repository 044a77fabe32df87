"""
Error taxonomy of the circulation engine.

Business-rule violations (NotFound, Conflict, Forbidden) are raised from inside
the unit of work, after which the transaction is rolled back. TransientError
marks lock timeouts and connection failures that are safe to retry.
"""


class CirculationError(Exception):
    status_code = 400
    default_code = "circulation_error"

    def __init__(self, detail, code=None):
        super().__init__(detail)
        self.detail = detail
        self.code = code or self.default_code

    def __str__(self):
        return self.detail


class NotFound(CirculationError):
    status_code = 404
    default_code = "not_found"


class Conflict(CirculationError):
    status_code = 409
    default_code = "conflict"


class Forbidden(CirculationError):
    status_code = 403
    default_code = "forbidden"


class TransientError(CirculationError):
    status_code = 503
    default_code = "transient"
    retry_after = 1
