"""
exceptions.py — Domain errors raised by services and dependencies

Each error carries the HTTP status it maps to; main.py turns them into the
standard ``{"status": "error", "message": ...}`` envelope.

Business Rules:
- ValidationFailed → 400 (bad input, e.g. sending before a supplier quote)
- NotAuthorized → 403 (caller does not own the RFQ)
- RfqNotFound → 404
- Anything else escaping a route is a 500

Called by: services/*, dependencies.py, main.py
"""


class RfqError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationFailed(RfqError):
    status_code = 400


class NotAuthorized(RfqError):
    status_code = 403


class RfqNotFound(RfqError):
    status_code = 404

    def __init__(self, message: str = "RFQ not found"):
        super().__init__(message)
