# services/payments/base.py
"""
Gateway-agnostic interface + value objects for the payment gateway.
Adapters must implement PaymentGateway.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Dict, Any, Protocol


@dataclass
class PreferenceItem:
    id: str
    title: str
    description: str
    unit_price: Decimal           # major units
    currency: str
    picture_url: Optional[str] = None
    category_id: str = "education"
    quantity: int = 1


@dataclass
class PreferenceRequest:
    item: PreferenceItem
    success_url: str
    failure_url: str
    pending_url: str
    external_reference: str       # round-tripped to the webhook
    notification_url: str
    auto_return: str = "approved"


@dataclass
class PreferenceResult:
    preference_id: str
    checkout_url: str


@dataclass
class GatewayPayment:
    id: str
    status: str                   # 'approved' | 'pending' | 'rejected' | ...
    external_reference: Optional[str]
    amount: Optional[Decimal]     # major units, as reported by the gateway
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def audit_fields(self) -> Dict[str, Any]:
        """Subset of the raw payload worth keeping on the local payment row."""
        keys = ("status", "status_detail", "payment_type_id", "payment_method_id",
                "transaction_amount", "currency_id", "date_approved")
        return {k: self.raw.get(k) for k in keys if k in self.raw}


class PaymentGateway(Protocol):
    name: str

    def create_preference(self, req: PreferenceRequest) -> PreferenceResult:
        """
        Create a hosted-checkout preference.
        Raise GatewayError on non-success responses.
        """

    def get_payment(self, external_id: str) -> GatewayPayment:
        """
        Fetch the authoritative status of a payment by the gateway's id.
        Raise GatewayError on non-success responses (404, 401, ...).
        """
