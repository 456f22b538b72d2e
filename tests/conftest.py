from bookineo.endpoints import app, install_services
from bookineo.auth import PasswordHasher
from bookineo.config import settings
from bookineo.database import Base, get_db
from bookineo.mailer import Mailer

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient


SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "secret123"


def override_get_db():
    """
    Override function for the database dependency.

    This replaces the normal get_db() with one that uses the test database.
    FastAPI's dependency injection will call this instead during tests.
    """
    db = TestingSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class RecordingMailer(Mailer):
    """Mailer that keeps every email in memory instead of sending it."""

    def __init__(self):
        super().__init__(api_key=None, sender="test@bookineo.app", frontend_url="http://frontend")
        self.sent = []
        self.reset_tokens = {}

    def send(self, to, subject, html_body):
        self.sent.append({"to": to, "subject": subject, "html": html_body})
        return True

    def send_password_reset(self, to, first_name, token):
        self.reset_tokens[to] = token
        return super().send_password_reset(to, first_name, token)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test and drop them afterwards, so every
    test starts from an empty database.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mailer():
    """
    Fresh recording mailer wired into the app's services.

    bcrypt runs at its minimum cost to keep the suite fast.
    """
    recording = RecordingMailer()
    install_services(app, settings, mailer=recording, hasher=PasswordHasher(rounds=4))
    return recording


@pytest.fixture
def client(mailer):
    return TestClient(app)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(client):
    """
    Factory registering a user and logging them in.

    Returns a dict with the registered "user" and ready-to-use "headers".
    """

    def _make_user(email, password=DEFAULT_PASSWORD, **profile):
        response = client.post(
            "/users/register",
            json={"email": email, "password": password, **profile},
        )
        assert response.status_code == 201, response.text
        login = client.post("/users/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        token = login.json()["token"]
        return {
            "user": response.json(),
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", first_name="Alice", last_name="Martin")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", first_name="Bob", last_name="Durand")


@pytest.fixture
def carol(make_user):
    return make_user("carol@example.com", first_name="Carol", last_name="Petit")
