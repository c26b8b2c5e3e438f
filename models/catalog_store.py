# models/catalog_store.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import select

from models.base import session_scope
from models.schema import Course, Professor


def create_course(name: str, professor_user_id: Optional[str], price_in_cents: Optional[int],
                  description: str | None = None, is_free: bool = False,
                  image_url: str | None = None) -> str:
    if price_in_cents is not None and price_in_cents < 0:
        raise ValueError("price_in_cents must be >= 0")
    with session_scope() as s:
        professor_id = None
        if professor_user_id:
            professor_id = s.execute(select(Professor.id).where(
                Professor.user_id == professor_user_id)).scalar_one_or_none()
            if professor_id is None:
                raise LookupError("Professor profile not found")
        c = Course(name=name, description=description, image_url=image_url,
                   is_free=is_free, price_in_cents=price_in_cents,
                   professor_id=professor_id)
        s.add(c)
        s.flush()
        return c.id


def find_course_by_name(name: str) -> Optional[str]:
    with session_scope() as s:
        return s.execute(select(Course.id).where(Course.name == name)).scalars().first()
