import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TOKEN_SWEEPER_ENABLED", "false")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.db_storage import DBStorage  # noqa: E402
from models.identity_store import IdentityStore  # noqa: E402
from models.token_store import TokenStore  # noqa: E402
from services.auth_service import AuthService  # noqa: E402
from services.token_lifecycle import TokenLifecycleManager  # noqa: E402
from utils.security import TokenSigner, hash_password  # noqa: E402

ACCESS_SECRET = "unit-access-secret-0123456789abcdef0123456789"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdef0123456789"
PASSWORD = "GoodPass123!"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 15, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    """Fresh in-memory database per test."""
    db = DBStorage("sqlite://").reload()
    yield db
    db.close()
    db.engine.dispose()


@pytest.fixture
def file_storage(tmp_path):
    """File-backed database, for tests that use several threads."""
    db = DBStorage(f"sqlite:///{tmp_path / 'tokens.db'}").reload()
    yield db
    db.close()
    db.engine.dispose()


@pytest.fixture
def signer(clock):
    return TokenSigner(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=30),
        refresh_ttl=timedelta(days=30),
        clock=clock,
    )


@pytest.fixture
def identities(storage):
    return IdentityStore(storage)


@pytest.fixture
def token_store(storage):
    return TokenStore(storage)


@pytest.fixture
def lifecycle(signer, token_store, identities):
    return TokenLifecycleManager(signer, token_store, identities)


@pytest.fixture
def auth_service(identities, lifecycle):
    return AuthService(identities, lifecycle)


@pytest.fixture
def alice(identities):
    return identities.create("Alice", "alice@x.com", hash_password(PASSWORD))


@pytest.fixture
def app():
    from api import create_app

    app = create_app("testing")
    yield app
    app.extensions["auth_tokens"].sweeper.stop()


@pytest.fixture
def client(app):
    return app.test_client()
