"""initial marketplace schema: accounts, courses, enrollments, payments, earnings

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:02:11.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(200)),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role in ('student','professor','admin')", name="ck_users_role"),
    )
    op.create_table(
        "students",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("user_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "professors",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("user_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "courses",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("image_url", sa.Text()),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("price_in_cents", sa.Integer()),
        sa.Column("professor_id", sa.String(32), sa.ForeignKey("professors.id", ondelete="RESTRICT")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("price_in_cents is null or price_in_cents >= 0", name="ck_courses_price_ge_0"),
    )
    op.create_table(
        "student_courses",
        sa.Column("student_id", sa.String(32), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("course_id", sa.String(32), sa.ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("student_id", sa.String(32), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.String(32), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state", sa.String(), nullable=False, server_default="enrolled"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grade", sa.Float()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
        sa.CheckConstraint("state in ('enrolled','completed','dropped')", name="ck_enrollments_state"),
        sa.CheckConstraint("progress between 0 and 100", name="ck_enrollments_progress"),
    )
    op.create_table(
        "payments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("external_payment_id", sa.String(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("course_id", sa.String(32), sa.ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("student_id", sa.String(32), sa.ForeignKey("students.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("enrollment_id", sa.String(32), sa.ForeignKey("enrollments.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("metadata", sa.JSON()),
        sa.CheckConstraint("amount_cents >= 0", name="ck_payments_amount_ge_0"),
        sa.CheckConstraint("status in ('pending','approved','rejected','refunded','cancelled')",
                           name="ck_payments_status"),
        # idempotency key for gateway notifications
        sa.UniqueConstraint("external_payment_id", name="uq_payments_external_payment_id"),
    )
    op.create_index("idx_payments_student", "payments", ["student_id"])
    op.create_index("idx_payments_course", "payments", ["course_id"])
    op.create_table(
        "earnings",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_id", sa.String(32), sa.ForeignKey("payments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("professor_id", sa.String(32), sa.ForeignKey("professors.id", ondelete="RESTRICT")),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("amount_cents >= 0", name="ck_earnings_amount_ge_0"),
        sa.CheckConstraint("type in ('earner_share','platform_fee')", name="ck_earnings_type"),
        sa.CheckConstraint("status in ('pending','processed','paid_out')", name="ck_earnings_status"),
    )
    op.create_index("idx_earnings_payment", "earnings", ["payment_id"])
    op.create_index("idx_earnings_professor", "earnings", ["professor_id"])


def downgrade():
    op.drop_index("idx_earnings_professor", table_name="earnings")
    op.drop_index("idx_earnings_payment", table_name="earnings")
    op.drop_table("earnings")
    op.drop_index("idx_payments_course", table_name="payments")
    op.drop_index("idx_payments_student", table_name="payments")
    op.drop_table("payments")
    op.drop_table("enrollments")
    op.drop_table("student_courses")
    op.drop_table("courses")
    op.drop_table("professors")
    op.drop_table("students")
    op.drop_table("users")
