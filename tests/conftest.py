"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.session_token import SessionToken
from app.models.user import User
from app.services.security import hash_password

PASSWORD = "P4ssword"
PASSWORD_HASH = hash_password(PASSWORD)


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, to: str, subject: str, html: str) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def send_account_activation(self, user: User) -> bool:
        return self.send(user.email, "Account activation", user.activation_token)

    def send_password_reset(self, user: User) -> bool:
        return self.send(user.email, "Password reset", user.password_reset_token)


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(name="db_session")
def db_session_fixture(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="mailer")
def mailer_fixture():
    from app.services import email as email_module

    mailer = FakeMailer()
    email_module._mailer = mailer  # type: ignore[assignment]
    yield mailer
    email_module._mailer = None


@pytest.fixture(name="image_store")
def image_store_fixture(tmp_path):
    from app.services import images as images_module

    store = images_module.ImageStore(tmp_path / "uploads", "profile", max_size_mb=2)
    store.create_folders()
    images_module._image_store = store
    yield store
    images_module._image_store = None


@pytest.fixture(name="client")
def client_fixture(db_session: Session, mailer: FakeMailer, image_store):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="add_user")
def add_user_fixture(db_session: Session):
    """Factory inserting users directly. Active unless inactive=True."""
    counter = {"n": 0}

    def _add_user(
        username: str | None = None,
        email: str | None = None,
        password: str = PASSWORD,
        inactive: bool = False,
        password_hash: str | None = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"user{n}",
            email=email or f"user{n}@mail.com",
            password_hash=password_hash or (PASSWORD_HASH if password == PASSWORD else hash_password(password)),
            inactive=inactive,
            activation_token="activation-token-%d" % n if inactive else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _add_user


@pytest.fixture(name="add_session_token")
def add_session_token_fixture(db_session: Session):
    """Insert a session token whose last use lies `age` in the past."""

    def _add(token: str, user_id: int, age: timedelta = timedelta(0)) -> SessionToken:
        row = SessionToken(token=token, user_id=user_id, last_used_at=datetime.utcnow() - age)
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture(name="login")
def login_fixture(client: TestClient):
    """Authenticate through the API and return the bearer token."""

    def _login(email: str, password: str = PASSWORD) -> str:
        response = client.post("/api/1.0/auth", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _login
