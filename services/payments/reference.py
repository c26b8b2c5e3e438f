# services/payments/reference.py
"""
External reference: the opaque string we hand the gateway at checkout and get
back on the payment. It carries the (user, course) pair as compact JSON:

    {"userId": "<account or student-profile id>", "courseId": "<course id>"}
"""
from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Optional

from services.payments.errors import MalformedReferenceError


@dataclass(frozen=True)
class ExternalReference:
    user_id: str
    course_id: str


def build_reference(user_id: str, course_id: str) -> str:
    return json.dumps({"userId": user_id, "courseId": course_id}, separators=(",", ":"))


def _field(obj: dict, key: str, raw: str) -> str:
    val = obj.get(key)
    if isinstance(val, bool) or not isinstance(val, (str, int)):
        raise MalformedReferenceError(f"external_reference missing {key}", raw=raw)
    val = str(val).strip()
    if not val:
        raise MalformedReferenceError(f"external_reference missing {key}", raw=raw)
    return val


def parse_reference(raw: Optional[str]) -> ExternalReference:
    if raw is None or not str(raw).strip():
        raise MalformedReferenceError("external_reference is empty", raw=raw)
    try:
        obj = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedReferenceError("external_reference is not JSON", raw=raw) from e
    if not isinstance(obj, dict):
        raise MalformedReferenceError("external_reference is not an object", raw=raw)
    return ExternalReference(
        user_id=_field(obj, "userId", raw),
        course_id=_field(obj, "courseId", raw),
    )
