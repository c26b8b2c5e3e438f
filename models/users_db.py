# models/users_db.py (Postgres / SQLAlchemy)
from __future__ import annotations
import re
from typing import Optional

from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import select
from models.base import session_scope
from models.schema import User, Student, Professor

EMAIL_RX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ROLES = {"student", "professor", "admin"}


def _as_dict(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "role": u.role,
        "created_at": u.created_at,
    }


def get_user(user_id: str) -> Optional[dict]:
    if not user_id:
        return None
    with session_scope() as s:
        u = s.get(User, user_id)
        return _as_dict(u) if u else None


def get_user_by_email(email: str) -> Optional[dict]:
    if not email:
        return None
    with session_scope() as s:
        u = s.execute(select(User).where(
            User.email == email.strip().lower())).scalars().first()
        return _as_dict(u) if u else None


def create_user(email: str, password: str, role: str = "student", name: str | None = None) -> Optional[str]:
    """
    Create an account and, for students and professors, the matching profile row.
    Returns the new user id, or None if the input is invalid or the email is taken.
    """
    if not email or not password or role not in ROLES:
        return None
    email = email.strip().lower()
    if not EMAIL_RX.match(email):
        return None
    with session_scope() as s:
        if s.execute(select(User.id).where(User.email == email)).first():
            return None
        u = User(email=email, name=name,
                 password_hash=generate_password_hash(password), role=role)
        s.add(u)
        s.flush()
        if role == "student":
            s.add(Student(user_id=u.id))
        elif role == "professor":
            s.add(Professor(user_id=u.id))
        return u.id


def verify_password(email: str, password: str) -> Optional[dict]:
    """Return the user dict when the credentials match, else None."""
    if not email:
        return None
    with session_scope() as s:
        u = s.execute(select(User).where(
            User.email == email.strip().lower())).scalars().first()
        if u and check_password_hash(u.password_hash, password):
            return _as_dict(u)
        return None


def get_profile_ids(user_id: str) -> dict:
    with session_scope() as s:
        st = s.execute(select(Student.id).where(
            Student.user_id == user_id)).scalar_one_or_none()
        pr = s.execute(select(Professor.id).where(
            Professor.user_id == user_id)).scalar_one_or_none()
        return {"student_id": st, "professor_id": pr}
