# services/reconciliation.py
"""
Payment reconciliation: turn a gateway notification (just a payment id) into
a Payment row, its two Earning rows and, if missing, the Enrollment.

Stage A  fetch + triage, no writes:
         gateway status -> reference parse -> "already processed?" check
Stage B  one transaction: resolve course/student, insert payment (unique on
         external_payment_id), split earnings, ensure enrollment
Stage C  post-commit hooks (confirmation mail); failures are logged only

Gateways deliver at least once, so every path that cannot or need not act
returns a no-op result instead of raising. Only gateway failures and
unresolvable course/student data propagate, so a redelivery can retry them.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.base import session_scope
from models.enrollments_store import create_enrollment, find_by_student_and_course, resolve_student
from models.payments_store import insert_approved_payment, insert_earnings, payment_exists
from models.schema import Course, Enrollment
from services.currency import Split, split_share, to_minor_units
from services.metrics import RECONCILIATIONS
from services.notifications import PurchaseConfirmation, send_purchase_confirmation
from services.payments import config as pay_cfg
from services.payments.base import GatewayPayment, PaymentGateway
from services.payments.errors import MalformedReferenceError, ReconciliationDataError
from services.payments.reference import ExternalReference, parse_reference

logger = logging.getLogger(__name__)


class Outcome:
    NOT_APPROVED = "not_approved"
    MALFORMED_REFERENCE = "malformed_reference"
    DUPLICATE = "duplicate"
    CREATED = "created"
    ALREADY_ENROLLED = "already_enrolled"


@dataclass
class ReconciliationResult:
    outcome: str
    external_payment_id: str
    payment_id: Optional[str] = None
    enrollment_id: Optional[str] = None
    enrollment_created: bool = False
    split: Optional[Split] = None

    @property
    def committed(self) -> bool:
        return self.outcome in (Outcome.CREATED, Outcome.ALREADY_ENROLLED)


class ReconciliationEngine:
    def __init__(self, gateway: PaymentGateway, session_factory=None, *,
                 earner_percent: Decimal | float | None = None,
                 notifier: Callable[[PurchaseConfirmation], Any] = send_purchase_confirmation,
                 frontend_url: str | None = None) -> None:
        self.gateway = gateway
        self.session_factory = session_factory
        self.earner_percent = (Decimal(str(earner_percent)) if earner_percent is not None
                               else pay_cfg.earner_percent())
        self.notifier = notifier
        self.frontend_url = (frontend_url if frontend_url is not None
                             else (pay_cfg.cfg("FRONTEND_BASE_URL") or "")).rstrip("/")

    # ----- public ---------------------------------------------------------

    def reconcile(self, external_payment_id: str) -> ReconciliationResult:
        external_payment_id = str(external_payment_id).strip()
        logger.info("reconcile start payment=%s", external_payment_id)
        try:
            result = self._reconcile(external_payment_id)
        except Exception:
            RECONCILIATIONS.labels(outcome="error").inc()
            raise
        RECONCILIATIONS.labels(outcome=result.outcome).inc()
        return result

    # ----- stages ---------------------------------------------------------

    def _reconcile(self, external_payment_id: str) -> ReconciliationResult:
        # Stage A: the gateway call happens before any transaction is opened
        gp = self.gateway.get_payment(external_payment_id)
        logger.info("payment=%s gateway status=%s", external_payment_id, gp.status)

        if not gp.is_approved:
            logger.info("payment=%s not approved (%s); nothing to do",
                        external_payment_id, gp.status)
            return ReconciliationResult(Outcome.NOT_APPROVED, external_payment_id)

        try:
            ref = parse_reference(gp.external_reference)
        except MalformedReferenceError as e:
            logger.error("payment=%s cannot be reconciled: %s (external_reference=%r)",
                         external_payment_id, e, e.raw)
            return ReconciliationResult(Outcome.MALFORMED_REFERENCE, external_payment_id)

        if self._already_processed(external_payment_id):
            logger.warning("payment=%s already processed; ignoring notification",
                           external_payment_id)
            return ReconciliationResult(Outcome.DUPLICATE, external_payment_id)

        # Stage B
        post_commit: List[Callable[[], Any]] = []
        try:
            with session_scope(self.session_factory) as s:
                result = self._commit(s, external_payment_id, gp, ref, post_commit)
        except IntegrityError:
            # a concurrent delivery committed the same external id first
            if self._already_processed(external_payment_id):
                logger.warning("payment=%s lost insert race; treating as already processed",
                               external_payment_id)
                return ReconciliationResult(Outcome.DUPLICATE, external_payment_id)
            raise
        logger.info("payment=%s committed outcome=%s payment_id=%s",
                    external_payment_id, result.outcome, result.payment_id)

        # Stage C
        self._run_post_commit(external_payment_id, post_commit)
        return result

    def _already_processed(self, external_payment_id: str) -> bool:
        with session_scope(self.session_factory) as s:
            return payment_exists(s, external_payment_id)

    def _commit(self, s: Session, external_payment_id: str, gp: GatewayPayment,
                ref: ExternalReference, post_commit: List[Callable[[], Any]]) -> ReconciliationResult:
        course = s.get(Course, ref.course_id)
        student = resolve_student(s, ref.user_id)
        if course is None or student is None:
            logger.error("payment=%s course=%s or student=%s not found",
                         external_payment_id, ref.course_id, ref.user_id)
            raise ReconciliationDataError(
                f"Course or Student not found (course={ref.course_id}, user={ref.user_id})")
        if not course.price_in_cents:
            logger.error("payment=%s course=%s has no price", external_payment_id, course.id)
            raise ReconciliationDataError(f"Course price is not set (course={course.id})")

        # charge the catalog price, not the amount reported in the notification
        total_cents = course.price_in_cents
        if gp.amount is not None and to_minor_units(gp.amount) != total_cents:
            logger.warning("payment=%s gateway amount %s differs from course price %s cents",
                           external_payment_id, gp.amount, total_cents)

        payment = insert_approved_payment(
            s, external_payment_id=external_payment_id, amount_cents=total_cents,
            course=course, student=student, metadata=gp.audit_fields())

        split = split_share(total_cents, self.earner_percent)
        logger.info("payment=%s split total=%s earner=%s platform=%s",
                    external_payment_id, total_cents, split.earner_cents, split.platform_cents)
        insert_earnings(s, payment, split, course.professor_id)

        enrollment, created = self._ensure_enrollment(s, ref.user_id, student, course)
        if not created:
            logger.warning("payment=%s for already enrolled student=%s course=%s; "
                           "payment and earnings recorded", external_payment_id, student.id, course.id)
            result = ReconciliationResult(Outcome.ALREADY_ENROLLED, external_payment_id,
                                          payment_id=payment.id, enrollment_id=enrollment.id,
                                          split=split)
        else:
            payment.enrollment_id = enrollment.id
            s.flush()
            logger.info("payment=%s enrolled student=%s course=%s",
                        external_payment_id, student.id, course.id)
            result = ReconciliationResult(Outcome.CREATED, external_payment_id,
                                          payment_id=payment.id, enrollment_id=enrollment.id,
                                          enrollment_created=True, split=split)

        mail = self._confirmation_for(student, course, payment.amount_cents,
                                      external_payment_id, payment.paid_at)
        if mail is not None:
            post_commit.append(lambda: self.notifier(mail))
        return result

    @staticmethod
    def _ensure_enrollment(s: Session, user_id: str, student, course: Course) -> Tuple[Enrollment, bool]:
        """Existing enrollment, or a new one. The flag is True only when this call created it."""
        existing = find_by_student_and_course(s, user_id, course.id)
        if existing is not None:
            return existing, False
        try:
            # savepoint: losing the (student, course) unique race must not undo the payment
            with s.begin_nested():
                return create_enrollment(s, student, course), True
        except IntegrityError:
            existing = find_by_student_and_course(s, user_id, course.id)
            if existing is None:
                raise
            logger.warning("enrollment student=%s course=%s was created concurrently",
                           existing.student_id, course.id)
            return existing, False

    def _confirmation_for(self, student, course: Course, amount_cents: int,
                          external_payment_id: str, paid_at) -> Optional[PurchaseConfirmation]:
        user = student.user
        if user is None or not user.email:
            logger.warning("student=%s has no account email; skipping confirmation", student.id)
            return None
        return PurchaseConfirmation(
            to_email=user.email,
            name=user.name,
            course_name=course.name,
            amount_cents=amount_cents,
            currency=pay_cfg.currency(),
            transaction_id=external_payment_id,
            purchase_date=paid_at,
            course_url=f"{self.frontend_url}/courses/{course.id}",
        )

    @staticmethod
    def _run_post_commit(external_payment_id: str, hooks: List[Callable[[], Any]]) -> None:
        for hook in hooks:
            try:
                hook()
            except Exception:
                logger.exception("payment=%s post-commit hook failed (payment already committed)",
                                 external_payment_id)
