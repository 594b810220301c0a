"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from booknet.auth.activation import ActivationService
from booknet.auth.authenticator import Authenticator
from booknet.auth.jwt import TokenCodec
from booknet.auth.passwords import PasswordHasher
from booknet.auth.policies import AccessPolicyEvaluator
from booknet.auth.revocation import RevocationList
from booknet.auth.users import UserStore
from booknet.config import Settings
from booknet.core.models import Identity, Role
from booknet.storage import create_local_storage

SECRET = "test-signing-secret-0123456789abcdef0123456789"
ROTATED_SECRET = "rotated-signing-secret-fedcba9876543210fedcba98"


# =============================================================================
# Time
# =============================================================================


class FakeClock:
    """A clock tests can move by hand."""
    
    def __init__(self, now: datetime):
        self.now = now
    
    def __call__(self) -> datetime:
        return self.now
    
    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Mail
# =============================================================================


class RecordingMailer:
    """Captures activation mails instead of sending them."""
    
    def __init__(self):
        self.sent: list[dict] = []
    
    async def send_activation(self, email: str, name: str, activation_code: str) -> bool:
        self.sent.append({"email": email, "name": name, "code": activation_code})
        return True


@pytest.fixture
def mailer():
    return RecordingMailer()


# =============================================================================
# Auth components
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        jwt_signing_keys={"k1": SECRET},
        jwt_active_key_id="k1",
        password_hash_iterations=1_000,
        seed_file=str(tmp_path / "missing-seed.yaml"),
        cors_origins="http://testserver",
    )


@pytest.fixture
def storage(clock):
    return create_local_storage(clock)


@pytest.fixture
def users(storage):
    return UserStore(storage.metadata)


@pytest.fixture
def hasher():
    # Low iteration count keeps the suite fast
    return PasswordHasher(iterations=1_000)


@pytest.fixture
def codec(clock):
    return TokenCodec(
        keys={"k1": SECRET},
        active_key_id="k1",
        default_ttl=timedelta(hours=1),
        clock=clock,
    )


@pytest.fixture
def authenticator(users, hasher):
    return Authenticator(users, hasher)


@pytest.fixture
def revocations(storage, clock):
    return RevocationList(storage.cache, clock=clock)


@pytest.fixture
def policies():
    return AccessPolicyEvaluator()


@pytest.fixture
def activation(storage, users, mailer, clock):
    return ActivationService(
        storage.metadata,
        users,
        mailer,
        ttl=timedelta(minutes=15),
        clock=clock,
    )


# =============================================================================
# Identities
# =============================================================================


@pytest.fixture
def make_identity(users, hasher):
    """Factory: store an identity and return it."""
    
    async def _make(
        email: str = "alice@example.com",
        password: str = "correct-horse",
        roles: list[str] | None = None,
        enabled: bool = True,
        locked: bool = False,
    ) -> Identity:
        identity = Identity(
            email=email,
            firstname=email.split("@")[0].capitalize(),
            lastname="Tester",
            password_hash=hasher.hash(password),
            roles=roles if roles is not None else [Role.USER.value],
            enabled=enabled,
            account_locked=locked,
        )
        return await users.create(identity)
    
    return _make
