"""
Domain errors raised by the services and mapped to HTTP responses in main.py

Verification denials are not errors: scan_ticket returns a result with
valid=False for them.
"""
from typing import Dict


class TicketingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TicketingError):
    """Submission rejected by the form's validation rules"""
    status_code = 400

    def __init__(self, errors: Dict[str, str]):
        super().__init__("Validation failed")
        self.errors = errors


class NotFoundError(TicketingError):
    status_code = 404


class ConflictError(TicketingError):
    """Operation not allowed in the current state, e.g. re-issuing a QR code"""
    status_code = 400


class StoreError(TicketingError):
    """The registration store failed; details are logged, not returned"""
    status_code = 500
