# services/checkout.py
"""
Checkout initiation: validate the purchase and ask the gateway for a hosted
checkout preference whose external reference points back at (user, course).
"""
from __future__ import annotations
import logging
from urllib.parse import urlparse

from models.base import session_scope
from models.enrollments_store import resolve_student
from models.schema import Course
from services.currency import to_major_units
from services.metrics import PREFERENCES_CREATED
from services.payments import config as pay_cfg
from services.payments.base import PaymentGateway, PreferenceItem, PreferenceRequest, PreferenceResult
from services.payments.errors import CheckoutError
from services.payments.reference import build_reference

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/payments/webhook"


def _valid_url(u: str) -> bool:
    p = urlparse(u)
    return p.scheme in ("http", "https") and bool(p.netloc)


def _urls(course_id: str) -> dict:
    frontend = (pay_cfg.cfg("FRONTEND_BASE_URL") or "").strip().rstrip("/")
    backend = (pay_cfg.cfg("BACKEND_PUBLIC_URL") or "").strip().rstrip("/")
    if not backend:
        logger.error("BACKEND_PUBLIC_URL is not set; gateway notifications would be lost")
        raise CheckoutError("Server configuration error: webhook URL is missing.", status=500)
    urls = {
        "success": f"{frontend}/payment/success?course_id={course_id}",
        "failure": f"{frontend}/payment/failure?course_id={course_id}",
        "pending": f"{frontend}/payment/pending?course_id={course_id}",
        "notification": f"{backend}{WEBHOOK_PATH}",
    }
    if not (_valid_url(urls["success"]) and _valid_url(urls["notification"])):
        logger.error("invalid FRONTEND_BASE_URL=%r or BACKEND_PUBLIC_URL=%r", frontend, backend)
        raise CheckoutError("Server configuration error: invalid URL configuration.", status=500)
    return urls


def create_preference(course_id: str, user_id: str, gateway: PaymentGateway,
                      session_factory=None) -> PreferenceResult:
    if not course_id or not user_id:
        raise CheckoutError("courseId is required.", status=400)

    with session_scope(session_factory) as s:
        course = s.get(Course, course_id)
        if course is None:
            raise CheckoutError("Course not found", status=404)
        if course.is_free:
            raise CheckoutError("Cannot create preference for a free course", status=400)
        if not course.price_in_cents:
            raise CheckoutError("Course price is not set", status=400)
        if resolve_student(s, user_id) is None:
            raise CheckoutError("Only students can purchase courses", status=403)
        item = PreferenceItem(
            id=course.id,
            title=course.name,
            description=course.description or course.name,
            picture_url=course.image_url,
            unit_price=to_major_units(course.price_in_cents),
            currency=pay_cfg.currency(),
        )

    urls = _urls(course_id)
    req = PreferenceRequest(
        item=item,
        success_url=urls["success"],
        failure_url=urls["failure"],
        pending_url=urls["pending"],
        external_reference=build_reference(user_id, course_id),
        notification_url=urls["notification"],
    )
    logger.info("create_preference course=%s user=%s price=%s", course_id, user_id, item.unit_price)
    result = gateway.create_preference(req)
    PREFERENCES_CREATED.inc()
    return result
