# services/payments/config.py
import os
from decimal import Decimal

from flask import current_app, has_app_context

from services.currency import earner_fraction_from_platform_fee


def cfg(key: str, default: str | None = None) -> str | None:
    """Env first, then Flask config."""
    v = os.environ.get(key)
    if v is not None:
        return v
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def earner_percent() -> Decimal:
    """Earner fraction of a payment, derived from PLATFORM_FEE_PERCENT (default 3%)."""
    return earner_fraction_from_platform_fee(cfg("PLATFORM_FEE_PERCENT") or "3")


def currency() -> str:
    return (cfg("PAYMENT_CURRENCY") or "ARS").upper()
