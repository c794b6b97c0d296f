"""Two threads rotating the same refresh token: exactly one may win."""

import threading

import pytest

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from services.authenticator import PasswordAuthenticator
from services.errors import TokenInvalidError
from services.token_service import TokenService

from tests.conftest import ACCESS_TTL, REFRESH_TTL


@pytest.fixture
def file_storage(tmp_path):
    store = DBStorage(f"sqlite:///{tmp_path / 'tokens.db'}")
    store.reload()
    yield store
    store.close()


@pytest.fixture
def file_token_service(file_storage, codec, clock):
    return TokenService(
        store=file_storage,
        authenticator=PasswordAuthenticator(file_storage),
        codec=codec,
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
        clock=clock,
    )


@pytest.mark.parametrize("attempt", range(5))
def test_concurrent_rotation_has_single_winner(file_token_service, file_storage, attempt):
    user = file_storage.create_user(email=f"race{attempt}@example.com", password_hash="unused")
    _, refresh = file_token_service.issue_pair(user.id, None)
    file_storage.close()

    barrier = threading.Barrier(2)
    successes = []
    failures = []

    def rotate():
        try:
            barrier.wait()
            successes.append(file_token_service.rotate(refresh.token_string, "racer"))
        except TokenInvalidError as exc:
            failures.append(exc)
        finally:
            # each thread has its own scoped session
            file_storage.close()

    threads = [threading.Thread(target=rotate) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(successes) == 1
    assert len(failures) == 1
    assert file_storage.count(RefreshToken) == 1
    new_access, new_refresh = successes[0]
    assert file_token_service.validate(new_refresh.token_string, False)[0] == user.id
