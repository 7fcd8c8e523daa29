import logfire
import pytest

from fastapi.testclient import TestClient

from middleware.rate_limiting import FixedWindowRateLimiter
from security.gate import AuthenticationGate
from security.passwords import classify_secret, hash_secret
from security.settings import AuthSettings, parse_duration


logfire.configure(send_to_logfire=False, console=False)

ADMIN_EMAIL = "admin@site.com"
ADMIN_PASSWORD = "admin123"
SIGNING_KEY = "test-jwt-secret"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually driven clock, in seconds since epoch."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(secret: str = ADMIN_PASSWORD, **overrides) -> AuthSettings:
    defaults = dict(
        identity=ADMIN_EMAIL,
        secret=classify_secret(secret) if secret else None,
        signing_key=SIGNING_KEY,
        token_lifetime=parse_duration("24h"),
        token_lifetime_label="24h",
        login_max_attempts=5,
        login_window_seconds=900,
    )
    defaults.update(overrides)
    return AuthSettings(**defaults)


def make_gate(settings: AuthSettings, clock: FakeClock) -> AuthenticationGate:
    limiter = FixedWindowRateLimiter(
        max_attempts=settings.login_max_attempts,
        window_seconds=settings.login_window_seconds,
        clock=clock,
    )
    return AuthenticationGate(settings, rate_limiter=limiter, clock=clock)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def hashed_password() -> str:
    return hash_secret(ADMIN_PASSWORD)


@pytest.fixture
def settings() -> AuthSettings:
    return make_settings()


@pytest.fixture
def gate(settings, clock) -> AuthenticationGate:
    return make_gate(settings, clock)


@pytest.fixture
def client(gate):
    from main import app
    from security.helpers import get_authentication_gate

    app.dependency_overrides[get_authentication_gate] = lambda: gate
    yield TestClient(app)
    app.dependency_overrides.clear()
