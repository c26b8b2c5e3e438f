from decimal import Decimal

import pytest

import controllers.payments as payments_ctrl
from models.enrollments_store import get_enrollment
from services.payments.dummy_provider import DummyGateway
from services.payments.errors import GatewayError
from services.payments.reference import build_reference, parse_reference
from tests.utils import BACKEND, FRONTEND, login_student, login_user


def _checkout(client, course_id):
    return client.post("/payments/create-preference", json={"courseId": course_id})


def test_requires_login(client, marketplace):
    r = _checkout(client, marketplace["course_id"])
    assert r.status_code == 401
    assert r.get_json() == {"error": "authentication required"}


def test_creates_preference_for_paid_course(client, marketplace):
    m = marketplace
    assert login_student(client).status_code == 200

    r = _checkout(client, m["course_id"])

    assert r.status_code == 200
    body = r.get_json()
    assert body["preferenceId"].startswith("dummy-pref-")
    assert body["initPoint"].endswith(body["preferenceId"])

    req = DummyGateway.get_preference(body["preferenceId"])
    assert req.item.id == m["course_id"]
    assert req.item.title == "Python desde cero"
    assert req.item.description == "Intro"
    assert req.item.unit_price == Decimal("1500.00")
    assert req.item.currency == "ARS"
    assert req.item.quantity == 1
    assert req.external_reference == build_reference(m["student_user_id"], m["course_id"])
    assert req.success_url == f"{FRONTEND}/payment/success?course_id={m['course_id']}"
    assert req.failure_url == f"{FRONTEND}/payment/failure?course_id={m['course_id']}"
    assert req.pending_url == f"{FRONTEND}/payment/pending?course_id={m['course_id']}"
    assert req.notification_url == f"{BACKEND}/payments/webhook"
    assert req.auto_return == "approved"


@pytest.mark.parametrize("key, status", [
    ("free_course_id", 400),
    ("unpriced_course_id", 400),
])
def test_rejects_unpayable_courses(client, marketplace, key, status):
    login_student(client)
    assert _checkout(client, marketplace[key]).status_code == status


def test_unknown_course_is_404(client, marketplace):
    login_student(client)
    r = _checkout(client, "no-such-course")
    assert r.status_code == 404
    assert r.get_json() == {"error": "Course not found"}


def test_missing_course_id_is_400(client, marketplace):
    login_student(client)
    assert client.post("/payments/create-preference", json={}).status_code == 400
    assert client.post("/payments/create-preference", json={"courseId": "  "}).status_code == 400


def test_only_students_can_buy(client, marketplace):
    login_user(client, "profe@example.com", "profe1234")
    assert _checkout(client, marketplace["course_id"]).status_code == 403


def test_missing_backend_url_is_a_server_error(app, client, marketplace, monkeypatch):
    monkeypatch.delenv("BACKEND_PUBLIC_URL", raising=False)
    monkeypatch.setitem(app.config, "BACKEND_PUBLIC_URL", None)
    login_student(client)

    r = _checkout(client, marketplace["course_id"])

    assert r.status_code == 500
    assert "webhook URL" in r.get_json()["error"]


def test_invalid_frontend_url_is_a_server_error(app, client, marketplace, monkeypatch):
    monkeypatch.delenv("FRONTEND_BASE_URL", raising=False)
    monkeypatch.setitem(app.config, "FRONTEND_BASE_URL", "front.test")
    login_student(client)

    assert _checkout(client, marketplace["course_id"]).status_code == 500


def test_gateway_failure_is_502(client, marketplace, monkeypatch):
    class Down(DummyGateway):
        def create_preference(self, req):
            raise GatewayError("invalid unit_price", status=400)

    monkeypatch.setattr(payments_ctrl, "get_gateway", lambda: Down())
    login_student(client)

    r = _checkout(client, marketplace["course_id"])

    assert r.status_code == 502
    assert r.get_json() == {"error": "Payment gateway error"}


def test_checkout_then_webhook_enrolls_student(client, gateway, marketplace):
    m = marketplace
    login_student(client)
    pref_id = _checkout(client, m["course_id"]).get_json()["preferenceId"]

    # the buyer pays; the gateway records the payment against our reference
    ref = DummyGateway.get_preference(pref_id).external_reference
    assert parse_reference(ref).user_id == m["student_user_id"]
    gateway.seed_payment("mp-e2e", "approved", ref, amount=Decimal("1500.00"))

    assert get_enrollment(m["student_user_id"], m["course_id"]) is None
    r = client.post("/payments/webhook", json={"type": "payment", "data": {"id": "mp-e2e"}})

    assert r.status_code == 200
    enrollment = get_enrollment(m["student_user_id"], m["course_id"])
    assert enrollment is not None
    assert enrollment["student_id"] == m["student_id"]
