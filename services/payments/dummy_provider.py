# services/payments/dummy_provider.py
"""
A development-only gateway that keeps preferences and payments in memory.
Useful to exercise checkout + webhook flows without touching the real API.

How it works:
- create_preference(...) stores the request and returns a local checkout URL.
- seed_payment(...) plays the gateway's role of recording a payment outcome;
  the next webhook for that id will see it through get_payment(...).
"""

from __future__ import annotations
import itertools
import threading
from decimal import Decimal
from typing import Any, Dict, Optional

from services.payments.base import (
    GatewayPayment, PaymentGateway, PreferenceRequest, PreferenceResult,
)
from services.payments.errors import GatewayError

_lock = threading.Lock()
_preferences: Dict[str, PreferenceRequest] = {}
_payments: Dict[str, Dict[str, Any]] = {}
_seq = itertools.count(1)


class DummyGateway(PaymentGateway):
    name = "dummy"

    def create_preference(self, req: PreferenceRequest) -> PreferenceResult:
        with _lock:
            pref_id = f"dummy-pref-{next(_seq)}"
            _preferences[pref_id] = req
        return PreferenceResult(pref_id, f"http://localhost/dummy-checkout/{pref_id}")

    def get_payment(self, external_id: str) -> GatewayPayment:
        with _lock:
            raw = _payments.get(str(external_id))
        if raw is None:
            raise GatewayError("Payment not found", status=404)
        amount = raw.get("transaction_amount")
        return GatewayPayment(
            id=str(external_id),
            status=raw["status"],
            external_reference=raw.get("external_reference"),
            amount=Decimal(str(amount)) if amount is not None else None,
            raw=dict(raw),
        )

    # ---- dev/test helpers ----
    @staticmethod
    def seed_payment(external_id: str, status: str = "approved",
                     external_reference: Optional[str] = None,
                     amount: Optional[Decimal] = None, **extra: Any) -> None:
        raw = {"id": external_id, "status": status,
               "external_reference": external_reference,
               "transaction_amount": float(amount) if amount is not None else None}
        raw.update(extra)
        with _lock:
            _payments[str(external_id)] = raw

    @staticmethod
    def get_preference(pref_id: str) -> Optional[PreferenceRequest]:
        with _lock:
            return _preferences.get(pref_id)

    @staticmethod
    def reset() -> None:
        with _lock:
            _preferences.clear()
            _payments.clear()
