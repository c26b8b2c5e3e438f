# models/enrollments_store.py
"""
Enrollment lookup shared by the reconciliation engine and the rest of the app.

Callers are inconsistent about which identifier they hold for a student: some
have the account (users.id), others the student profile (students.id). Every
lookup here accepts either and resolves account-id first, profile-id second.
"""
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.base import session_scope
from models.schema import Course, Enrollment, EnrollmentState, Student, User, utcnow


def resolve_student(s: Session, user_or_student_id: str) -> Optional[Student]:
    """Account id -> its student profile; otherwise treat the id as a profile id."""
    if not user_or_student_id:
        return None
    user = s.get(User, user_or_student_id)
    if user is not None and user.student_profile is not None:
        return user.student_profile
    return s.get(Student, user_or_student_id)


def find_by_student_and_course(s: Session, user_or_student_id: str, course_id: str) -> Optional[Enrollment]:
    student = resolve_student(s, user_or_student_id)
    if student is None or not course_id:
        return None
    return s.execute(
        select(Enrollment).where(
            (Enrollment.student_id == student.id) & (
                Enrollment.course_id == course_id)
        )
    ).scalars().first()


def create_enrollment(s: Session, student: Student, course: Course) -> Enrollment:
    enrollment = Enrollment(
        student_id=student.id,
        course_id=course.id,
        state=EnrollmentState.ENROLLED,
        enrolled_at=utcnow(),
        progress=0,
    )
    s.add(enrollment)
    if course not in student.courses:
        student.courses.append(course)
    s.flush()
    return enrollment


def get_enrollment(user_or_student_id: str, course_id: str) -> Optional[dict]:
    with session_scope() as s:
        e = find_by_student_and_course(s, user_or_student_id, course_id)
        if not e:
            return None
        return {c: getattr(e, c) for c in ("id", "student_id", "course_id", "state", "progress", "grade", "enrolled_at")}
