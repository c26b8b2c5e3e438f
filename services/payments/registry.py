# services/payments/registry.py
from services.payments.base import PaymentGateway
from services.payments.config import cfg
# replace/add real adapters here
from services.payments.dummy_provider import DummyGateway
from services.payments.mercadopago import MercadoPagoGateway


def get_gateway() -> PaymentGateway:
    name = (cfg("PAYMENT_PROVIDER") or "mercadopago").lower()
    if name == "mercadopago":
        return MercadoPagoGateway()
    if name == "dummy":
        return DummyGateway()
    raise RuntimeError(f"Unknown PAYMENT_PROVIDER: {name}")
