# models/schema.py
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    JSON, Boolean, Column, String, Text, Integer, DateTime, ForeignKey, CheckConstraint,
    UniqueConstraint, Index, Table
)
from models.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class PaymentStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class EarningType:
    EARNER_SHARE = "earner_share"
    PLATFORM_FEE = "platform_fee"


class EarningStatus:
    PENDING = "pending"
    PROCESSED = "processed"
    PAID_OUT = "paid_out"


class EnrollmentState:
    ENROLLED = "enrolled"
    COMPLETED = "completed"
    DROPPED = "dropped"


# --- ACCOUNTS


class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(200))
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(
        String, nullable=False)  # ('student','professor','admin')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)

    student_profile = relationship(
        "Student", back_populates="user", uselist=False)
    professor_profile = relationship(
        "Professor", back_populates="user", uselist=False)

    __table_args__ = (
        CheckConstraint("role in ('student','professor','admin')",
                        name="ck_users_role"),
    )


student_courses = Table(
    "student_courses",
    Base.metadata,
    Column("student_id", String(32), ForeignKey(
        "students.id", ondelete="CASCADE"), primary_key=True),
    Column("course_id", String(32), ForeignKey(
        "courses.id", ondelete="CASCADE"), primary_key=True),
)


class Student(Base):
    __tablename__ = "students"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="SET NULL"), unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="student_profile")
    courses = relationship("Course", secondary=student_courses)


class Professor(Base):
    __tablename__ = "professors"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="SET NULL"), unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="professor_profile")


# --- CATALOG


class Course(Base):
    __tablename__ = "courses"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text)
    is_free: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False)
    # minor units; NULL means "no price configured"
    price_in_cents: Mapped[int | None] = mapped_column(Integer)
    professor_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("professors.id", ondelete="RESTRICT"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)

    professor = relationship("Professor", lazy="joined")

    __table_args__ = (
        CheckConstraint("price_in_cents is null or price_in_cents >= 0",
                        name="ck_courses_price_ge_0"),
    )


class Enrollment(Base):
    __tablename__ = "enrollments"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    state: Mapped[str] = mapped_column(
        String, nullable=False, default=EnrollmentState.ENROLLED)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grade: Mapped[float | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)

    student = relationship("Student")
    course = relationship("Course")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id",
                         name="uq_enrollments_student_course"),
        CheckConstraint("state in ('enrolled','completed','dropped')",
                        name="ck_enrollments_state"),
        CheckConstraint("progress between 0 and 100",
                        name="ck_enrollments_progress"),
    )


# --- PAYMENTS


class Payment(Base):
    __tablename__ = "payments"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    external_payment_id: Mapped[str] = mapped_column(String, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PaymentStatus.PENDING)
    course_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)
    student_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    enrollment_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("enrollments.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # raw gateway fields kept for audit/debugging
    gateway_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON)

    course = relationship("Course")
    student = relationship("Student")
    enrollment = relationship("Enrollment")
    earnings = relationship("Earning", back_populates="payment",
                            order_by="Earning.type")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_payments_amount_ge_0"),
        CheckConstraint(
            "status in ('pending','approved','rejected','refunded','cancelled')",
            name="ck_payments_status"),
        UniqueConstraint("external_payment_id",
                         name="uq_payments_external_payment_id"),
    )


Index("idx_payments_student", Payment.student_id)
Index("idx_payments_course", Payment.course_id)


class Earning(Base):
    __tablename__ = "earnings"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("payments.id", ondelete="CASCADE"), nullable=False)
    # NULL for platform-fee rows
    professor_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("professors.id", ondelete="RESTRICT"))
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=EarningStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True))

    payment = relationship("Payment", back_populates="earnings")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_earnings_amount_ge_0"),
        CheckConstraint("type in ('earner_share','platform_fee')",
                        name="ck_earnings_type"),
        CheckConstraint("status in ('pending','processed','paid_out')",
                        name="ck_earnings_status"),
        Index("idx_earnings_payment", "payment_id"),
        Index("idx_earnings_professor", "professor_id"),
    )
