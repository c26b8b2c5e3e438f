# tests/conftest.py
import os
import tempfile

# must be in place before anything creates the engine
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(
    tempfile.gettempdir(), f"upskill_test_{os.getpid()}.sqlite3"))
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("PAYMENT_PROVIDER", "dummy")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "1")

import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402

from app import create_app  # noqa: E402
from models.base import Base, init_engine_and_session  # noqa: E402
from models.catalog_store import create_course  # noqa: E402
from models.users_db import create_user, get_profile_ids  # noqa: E402
from services.payments.dummy_provider import DummyGateway  # noqa: E402
from services.reconciliation import ReconciliationEngine  # noqa: E402
from tests.utils import BACKEND, FRONTEND  # noqa: E402


@pytest.fixture(scope="session")
def app():
    return create_app({
        "TESTING": True,
        "FRONTEND_BASE_URL": FRONTEND,
        "BACKEND_PUBLIC_URL": BACKEND,
    })

@pytest.fixture(scope="session")
def db_engine():
    engine, _Session = init_engine_and_session()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return engine

@pytest.fixture(autouse=True)
def _db_clean(db_engine):
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    DummyGateway.reset()
    yield

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def session_factory(db_engine):
    _, factory = init_engine_and_session()
    return factory

@pytest.fixture()
def marketplace():
    """A professor, a student, and courses priced to cover the split scenarios."""
    prof_user = create_user("profe@example.com", "profe1234",
                            role="professor", name="Profe")
    student_user = create_user("alumna@example.com", "alumna1234",
                               role="student", name="Alumna")
    return {
        "professor_user_id": prof_user,
        "professor_id": get_profile_ids(prof_user)["professor_id"],
        "student_user_id": student_user,
        "student_id": get_profile_ids(student_user)["student_id"],
        "course_id": create_course("Python desde cero", prof_user, 150000,
                                   description="Intro"),
        "odd_course_id": create_course("SQL avanzado", prof_user, 100001),
        "free_course_id": create_course("Git gratis", prof_user, None, is_free=True),
        "unpriced_course_id": create_course("Sin precio", prof_user, None),
    }

class MailRecorder:
    def __init__(self):
        self.sent = []

    def __call__(self, mail):
        self.sent.append(mail)
        return True

@pytest.fixture()
def mails():
    return MailRecorder()

@pytest.fixture()
def gateway():
    return DummyGateway()

@pytest.fixture()
def engine(gateway, session_factory, mails):
    return ReconciliationEngine(gateway, session_factory, earner_percent="0.97",
                                notifier=mails, frontend_url=FRONTEND)

@pytest.fixture()
def count_rows(session_factory):
    def _count(model):
        with session_factory() as s:
            return len(s.execute(select(model)).scalars().all())
    return _count
