# models/payments_store.py (Postgres / SQLAlchemy)
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.base import session_scope
from models.schema import (
    Course, Earning, EarningStatus, EarningType, Payment, PaymentStatus, Student, utcnow,
)
from services.currency import Split

_PAYMENT_COLS = ("id", "external_payment_id", "amount_cents", "status", "course_id",
                 "student_id", "enrollment_id", "created_at", "paid_at", "gateway_metadata")
_EARNING_COLS = ("id", "type", "amount_cents", "payment_id", "professor_id",
                 "status", "created_at", "processed_at")


def payment_exists(s: Session, external_payment_id: str) -> bool:
    return s.execute(select(Payment.id).where(
        Payment.external_payment_id == external_payment_id)).first() is not None


def get_payment_by_external_id(external_payment_id: str, factory=None) -> Optional[dict]:
    if not external_payment_id:
        return None
    with session_scope(factory) as s:
        p = s.execute(select(Payment).where(
            Payment.external_payment_id == external_payment_id)).scalars().first()
        if not p:
            return None
        out = {c: getattr(p, c) for c in _PAYMENT_COLS}
        out["earnings"] = [{c: getattr(e, c) for c in _EARNING_COLS} for e in p.earnings]
        return out


def insert_approved_payment(s: Session, *, external_payment_id: str, amount_cents: int,
                            course: Course, student: Student, metadata: dict) -> Payment:
    """
    Add the payment row and flush so the unique constraint on
    external_payment_id is checked now; a duplicate raises IntegrityError.
    """
    now = utcnow()
    p = Payment(
        external_payment_id=external_payment_id,
        amount_cents=amount_cents,
        status=PaymentStatus.APPROVED,
        course_id=course.id,
        student_id=student.id,
        created_at=now,
        paid_at=now,
        gateway_metadata=metadata,
    )
    s.add(p)
    s.flush()
    return p


def insert_earnings(s: Session, payment: Payment, split: Split, professor_id: Optional[str]) -> list[Earning]:
    now = utcnow()
    rows = [
        Earning(type=EarningType.EARNER_SHARE, amount_cents=split.earner_cents,
                payment_id=payment.id, professor_id=professor_id,
                status=EarningStatus.PENDING, created_at=now),
        Earning(type=EarningType.PLATFORM_FEE, amount_cents=split.platform_cents,
                payment_id=payment.id, professor_id=None,
                status=EarningStatus.PENDING, created_at=now),
    ]
    s.add_all(rows)
    s.flush()
    return rows
