import pytest

from models.users_db import create_user
from tests.utils import approved, login_student, login_user


@pytest.fixture()
def admin_client(client):
    create_user("admin@example.com", "admin1234", role="admin", name="Admin")
    assert login_user(client, "admin@example.com", "admin1234").status_code == 200
    return client


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}


def test_readyz_checks_database(client):
    r = client.get("/readyz")
    assert r.status_code == 200
    assert r.get_json()["status"] == "ok"


def test_metrics_endpoint(client):
    client.get("/healthz")
    r = client.get("/metrics")
    assert r.status_code == 200
    body = r.get_data(as_text=True)
    assert "payments_reconciliations_total" in body
    assert "http_requests_total" in body


def test_unknown_route_is_json_404(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.get_json() == {"error": "not found", "path": "/nope"}


def test_wrong_method_is_json_405(client):
    r = client.delete("/healthz")
    assert r.status_code == 405
    assert r.get_json()["error"] == "method not allowed"


def test_login_and_logout(client, marketplace):
    bad = login_user(client, "alumna@example.com", "wrong")
    assert bad.status_code == 401

    ok = login_student(client)
    assert ok.status_code == 200
    assert ok.get_json()["role"] == "student"
    assert ok.get_json()["id"] == marketplace["student_user_id"]

    assert client.post("/logout").status_code == 200
    assert client.post("/logout").status_code == 401


def test_login_accepts_form_posts(client, marketplace):
    r = client.post("/login", data={"email": "Alumna@Example.com ", "password": "alumna1234"})
    assert r.status_code == 200


def test_admin_can_inspect_payment(admin_client, engine, gateway, marketplace):
    m = marketplace
    approved(gateway, "mp-admin", m["student_user_id"], m["course_id"])
    engine.reconcile("mp-admin")

    r = admin_client.get("/payments/mp-admin")

    assert r.status_code == 200
    body = r.get_json()
    assert body["external_payment_id"] == "mp-admin"
    assert body["amount_cents"] == 150000
    assert sorted((e["type"], e["amount_cents"]) for e in body["earnings"]) == [
        ("earner_share", 145500), ("platform_fee", 4500)]
    assert admin_client.get("/payments/unknown").status_code == 404


def test_payment_inspection_is_admin_only(client, marketplace):
    assert client.get("/payments/mp-any").status_code == 401
    login_student(client)
    assert client.get("/payments/mp-any").status_code == 403


def test_cli_reconcile_and_show(app, gateway, marketplace):
    m = marketplace
    approved(gateway, "mp-cli", m["student_user_id"], m["course_id"])
    runner = app.test_cli_runner()

    first = runner.invoke(args=["payments", "reconcile", "mp-cli"])
    again = runner.invoke(args=["payments", "reconcile", "mp-cli"])
    shown = runner.invoke(args=["payments", "show", "mp-cli"])
    missing = runner.invoke(args=["payments", "show", "mp-none"])

    assert first.exit_code == 0, first.output
    assert first.output.startswith("mp-cli: created payment=")
    assert again.output.strip() == "mp-cli: duplicate"
    assert "amount_cents=150000" in shown.output
    assert "earning earner_share 145500 status=pending" in shown.output
    assert "earning platform_fee 4500 status=pending" in shown.output
    assert missing.output.strip() == "mp-none: not processed"
