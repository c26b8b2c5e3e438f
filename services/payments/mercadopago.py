# services/payments/mercadopago.py
"""
Thin Mercado Pago REST client. Stateless apart from a pooled requests.Session.

Configuration (env first, Flask config second):
  MP_ACCESS_TOKEN   bearer token (required)
  MP_API_BASE_URL   default: https://api.mercadopago.com
  MP_TIMEOUT        seconds (default 10)

Endpoints used:
  POST /checkout/preferences
  GET  /v1/payments/{id}
"""

from __future__ import annotations
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict
from urllib.parse import quote

import requests

from services.payments.base import (
    GatewayPayment, PaymentGateway, PreferenceRequest, PreferenceResult,
)
from services.payments.config import cfg
from services.payments.errors import GatewayError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mercadopago.com"


class MercadoPagoGateway(PaymentGateway):
    name = "mercadopago"

    def __init__(self, access_token: str | None = None, *, base_url: str | None = None,
                 timeout: float | None = None, session: requests.Session | None = None) -> None:
        token = access_token if access_token is not None else cfg("MP_ACCESS_TOKEN")
        if not token or not token.strip():
            raise RuntimeError("MP_ACCESS_TOKEN not set")
        self.base_url = (base_url or cfg("MP_API_BASE_URL")
                         or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = float(timeout if timeout is not None else cfg("MP_TIMEOUT", "10"))
        self.s = session or requests.Session()
        self.s.headers.update({
            "Authorization": f"Bearer {token.strip()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    # ---- generic request helper ----
    def _request(self, method: str, path: str, *, json_body: Dict[str, Any] | None = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.s.request(method, url, json=json_body, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error("mercadopago %s %s timed out after %ss", method, url, self.timeout)
            raise GatewayError(f"timeout after {self.timeout}s") from e
        except requests.RequestException as e:
            logger.error("mercadopago %s %s failed: %s", method, url, e)
            raise GatewayError(str(e)) from e

        if not r.ok:
            message = self._error_message(r)
            logger.error("mercadopago %s %s -> %s %s", method, url, r.status_code, message)
            raise GatewayError(message, status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise GatewayError("response is not JSON", status=r.status_code) from e

    @staticmethod
    def _error_message(r: requests.Response) -> str:
        try:
            body = r.json()
        except ValueError:
            return (r.text or "").strip()[:200] or r.reason or "Unknown error"
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or "Unknown error"
        return "Unknown error"

    # ----- public ---------------------------------------------------------

    def create_preference(self, req: PreferenceRequest) -> PreferenceResult:
        item = req.item
        body = {
            "items": [{
                "id": item.id,
                "title": item.title,
                "description": item.description,
                "picture_url": item.picture_url,
                "category_id": item.category_id,
                "quantity": item.quantity,
                "currency_id": item.currency,
                "unit_price": float(item.unit_price),
            }],
            "back_urls": {
                "success": req.success_url,
                "failure": req.failure_url,
                "pending": req.pending_url,
            },
            "auto_return": req.auto_return,
            "external_reference": req.external_reference,
            "notification_url": req.notification_url,
        }
        if body["items"][0]["picture_url"] is None:
            del body["items"][0]["picture_url"]

        logger.info("mercadopago create_preference item=%s price=%s %s",
                    item.id, item.unit_price, item.currency)
        js = self._request("POST", "/checkout/preferences", json_body=body)
        pref_id = js.get("id")
        init_point = js.get("init_point")
        if not pref_id or not init_point:
            raise GatewayError("preference response missing id/init_point")
        logger.info("mercadopago preference created id=%s", pref_id)
        return PreferenceResult(preference_id=str(pref_id), checkout_url=init_point)

    def get_payment(self, external_id: str) -> GatewayPayment:
        if not str(external_id or "").strip():
            raise GatewayError("payment id is empty", status=None)
        js = self._request("GET", f"/v1/payments/{quote(str(external_id).strip(), safe='')}")
        raw_amount = js.get("transaction_amount")
        try:
            amount = Decimal(str(raw_amount)) if raw_amount is not None else None
        except InvalidOperation as e:
            raise GatewayError(f"invalid transaction_amount {raw_amount!r}") from e
        if amount is not None and not amount.is_finite():
            raise GatewayError(f"invalid transaction_amount {raw_amount!r}")
        payment = GatewayPayment(
            id=str(js.get("id", external_id)),
            status=str(js.get("status") or ""),
            external_reference=js.get("external_reference"),
            amount=amount,
            raw=js,
        )
        logger.info("mercadopago payment %s status=%s", payment.id, payment.status)
        return payment
