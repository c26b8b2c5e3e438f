# services/payments/errors.py
from __future__ import annotations
from typing import Optional


class PaymentError(Exception):
    """Base class for payment failures."""


class GatewayError(PaymentError):
    """The remote payment API answered non-2xx, timed out, or was unreachable."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(f"gateway error (status={status}): {message}")
        self.status = status
        self.message = message


class ReconciliationDataError(PaymentError):
    """Course/student could not be resolved, or the course has no price."""


class MalformedReferenceError(PaymentError):
    """The external reference cannot be mapped back to (user, course)."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class CheckoutError(PaymentError):
    """Caller-facing validation failure while starting a checkout."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status
        self.message = message
