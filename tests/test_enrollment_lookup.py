from models.enrollments_store import (
    create_enrollment, find_by_student_and_course, get_enrollment, resolve_student,
)
from models.schema import Course, Student


def test_resolve_student_accepts_account_or_profile_id(session_factory, marketplace):
    m = marketplace
    with session_factory() as s:
        by_account = resolve_student(s, m["student_user_id"])
        by_profile = resolve_student(s, m["student_id"])
        assert by_account is not None
        assert by_account.id == by_profile.id == m["student_id"]


def test_resolve_student_unknown_or_non_student(session_factory, marketplace):
    with session_factory() as s:
        assert resolve_student(s, "") is None
        assert resolve_student(s, "nobody") is None
        assert resolve_student(s, marketplace["professor_user_id"]) is None


def test_find_by_student_and_course_with_either_id(session_factory, marketplace):
    m = marketplace
    with session_factory() as s:
        assert find_by_student_and_course(s, m["student_user_id"], m["course_id"]) is None
        student = s.get(Student, m["student_id"])
        course = s.get(Course, m["course_id"])
        created = create_enrollment(s, student, course)
        s.commit()
        created_id = created.id

    with session_factory() as s:
        a = find_by_student_and_course(s, m["student_user_id"], m["course_id"])
        b = find_by_student_and_course(s, m["student_id"], m["course_id"])
        assert a.id == b.id == created_id
        assert find_by_student_and_course(s, m["student_id"], m["odd_course_id"]) is None
        assert find_by_student_and_course(s, m["student_id"], "") is None
        assert [c.id for c in s.get(Student, m["student_id"]).courses] == [m["course_id"]]


def test_get_enrollment_returns_plain_dict(session_factory, marketplace):
    m = marketplace
    assert get_enrollment(m["student_user_id"], m["course_id"]) is None
    with session_factory() as s:
        create_enrollment(s, s.get(Student, m["student_id"]), s.get(Course, m["course_id"]))
        s.commit()

    e = get_enrollment(m["student_user_id"], m["course_id"])
    assert e["student_id"] == m["student_id"]
    assert e["state"] == "enrolled"
    assert e["progress"] == 0
    assert e["grade"] is None
