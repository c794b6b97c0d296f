import os
import uuid
from datetime import timedelta

os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from models.db_storage import DBStorage  # noqa: E402
from services.authenticator import PasswordAuthenticator  # noqa: E402
from services.token_service import TokenService  # noqa: E402
from utils.security import TokenCodec  # noqa: E402

START = 1_700_000_000
ACCESS_TTL = timedelta(minutes=15)
REFRESH_TTL = timedelta(days=14)


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_secret() -> str:
    """Distinct secret per test."""
    return f"test-secret-{uuid.uuid4().hex}-{uuid.uuid4().hex}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def secret():
    return make_secret()


@pytest.fixture
def codec(secret):
    return TokenCodec(secret)


@pytest.fixture
def storage():
    store = DBStorage("sqlite://")
    store.reload()
    yield store
    store.close()


@pytest.fixture
def authenticator(storage):
    return PasswordAuthenticator(storage)


@pytest.fixture
def token_service(storage, authenticator, codec, clock):
    return TokenService(
        store=storage,
        authenticator=authenticator,
        codec=codec,
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
        clock=clock,
    )


@pytest.fixture
def subject(storage):
    """A live user with the id "42"; password hashing is not needed here."""
    user = storage.create_user(email="user42@example.com", password_hash="unused", id="42")
    return user.id


@pytest.fixture
def app(clock, secret):
    app = create_app(
        "test",
        config_overrides={
            "JWT_SECRET": secret,
            "APP_NAME": "token-service-test",
            "ACCESS_TOKEN_EXPIRES": ACCESS_TTL,
            "REFRESH_TOKEN_EXPIRES": REFRESH_TTL,
        },
        clock=clock,
    )
    yield app
    app.extensions["storage"].close()


@pytest.fixture
def client(app):
    return app.test_client()
