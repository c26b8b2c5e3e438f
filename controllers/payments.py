# controllers/payments.py
from __future__ import annotations
import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from controllers.auth import admin_required
from models.base import init_engine_and_session
from models.payments_store import get_payment_by_external_id
from services.checkout import create_preference as start_checkout
from services.metrics import WEBHOOK_EVENTS
from services.payments.errors import CheckoutError, GatewayError
from services.payments.registry import get_gateway
from services.reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__)


def build_engine() -> ReconciliationEngine:
    _, factory = init_engine_and_session()
    return ReconciliationEngine(get_gateway(), factory)


def _notification_of(req) -> tuple[str, str]:
    """
    Gateways notify either with a JSON body {"type": "payment", "data": {"id": ...}}
    or with query parameters (?type=payment&data.id=... / ?topic=payment&id=...).
    """
    body = req.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    topic = body.get("type") or body.get("topic") or req.args.get(
        "type") or req.args.get("topic") or ""
    pid = data.get("id") or req.args.get("data.id") or req.args.get("id") or ""
    return str(topic), str(pid).strip()


# ----- user starts a checkout for a course -----

@payments_bp.post("/payments/create-preference")
@login_required
def create_preference():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    course_id = str(payload.get("courseId") or "").strip()
    if not course_id:
        return jsonify({"error": "courseId is required."}), 400

    _, factory = init_engine_and_session()
    try:
        result = start_checkout(course_id, current_user.id, get_gateway(), factory)
    except CheckoutError as e:
        logger.warning("create-preference rejected course=%s user=%s: %s",
                       course_id, current_user.id, e.message)
        return jsonify({"error": e.message}), e.status
    except GatewayError as e:
        logger.error("create-preference gateway failure course=%s: %s", course_id, e)
        return jsonify({"error": "Payment gateway error"}), 502

    return jsonify({"preferenceId": result.preference_id, "initPoint": result.checkout_url}), 200


# ----- provider webhook (no auth) -----

@payments_bp.post("/payments/webhook")
def webhook():
    """
    Always answers 200. Engine failures are logged (and counted) here; the
    gateway only redelivers what it never got an answer for.
    """
    topic, pid = _notification_of(request)
    logger.info("Webhook received type=%s id=%s body=%s", topic, pid,
                request.get_data(as_text=True)[:2000])

    if topic != "payment" or not pid:
        WEBHOOK_EVENTS.labels(provider="gateway", event=topic or "unknown", outcome="ignored").inc()
        return "Webhook received", 200

    try:
        engine = build_engine()
        result = engine.reconcile(pid)
    except Exception:
        logger.exception("Error processing webhook for payment=%s; acknowledging anyway", pid)
        WEBHOOK_EVENTS.labels(provider="gateway", event=topic, outcome="error").inc()
        return "Webhook received with error.", 200

    WEBHOOK_EVENTS.labels(provider=engine.gateway.name, event=topic, outcome=result.outcome).inc()
    return "Webhook received", 200


# ----- admin: inspect what a notification produced -----

@payments_bp.get("/payments/<external_id>")
@login_required
@admin_required
def show_payment(external_id: str):
    p = get_payment_by_external_id(external_id)
    if not p:
        return jsonify({"error": "Payment not found"}), 404
    return jsonify(p), 200
