import json

import pytest
from services.payments.errors import MalformedReferenceError
from services.payments.reference import ExternalReference, build_reference, parse_reference


def test_build_then_parse():
    raw = build_reference("u1", "c1")
    assert json.loads(raw) == {"userId": "u1", "courseId": "c1"}
    assert parse_reference(raw) == ExternalReference(user_id="u1", course_id="c1")


def test_parse_strips_whitespace_and_accepts_numeric_ids():
    assert parse_reference('{"userId": " 42 ", "courseId": 7}') == ExternalReference("42", "7")


@pytest.mark.parametrize("raw", [
    None,
    "",
    "   ",
    "not-json",
    "[1, 2]",
    '{"userId": "", "courseId": "c1"}',
    '{"userId": "u1"}',
    '{"courseId": "c1"}',
    '{"userId": null, "courseId": "c1"}',
    '{"userId": true, "courseId": "c1"}',
    '{"userId": {"id": 1}, "courseId": "c1"}',
])
def test_malformed_references(raw):
    with pytest.raises(MalformedReferenceError) as ei:
        parse_reference(raw)
    assert ei.value.raw == raw
