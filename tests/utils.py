# tests/utils.py
from services.payments.reference import build_reference

FRONTEND = "http://front.test"
BACKEND = "https://api.test"


def login_user(client, email, password):
    return client.post("/login", json={"email": email, "password": password})


def login_student(client):
    return login_user(client, "alumna@example.com", "alumna1234")


def approved(gateway, external_id, user_id, course_id, **extra):
    """Record an approved payment on the dummy gateway for (user, course)."""
    gateway.seed_payment(external_id, "approved",
                         build_reference(user_id, course_id), **extra)
