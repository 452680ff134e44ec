import pytest

import config
import main
from ratelimit import RateLimiter
from transport import TransportResult


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Stands in for SMTP. Set `fail_with` to make the next sends fail."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, msg):
        if self.fail_with:
            return TransportResult(success=False, error=self.fail_with)
        self.sent.append(msg)
        return TransportResult(success=True)


@pytest.fixture
def settings():
    return config.Settings(
        email_user='site@example.com',
        notify_address='site@example.com',
        secret_key='test-secret',
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(interval=60, ttl=1440, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(settings, notifier, limiter):
    app = main.create_app(settings=settings, notifier=notifier, limiter=limiter)
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def valid_payload():
    return {
        "purpose": 0,
        "firstName": "Ayşe",
        "lastName": "Yılmaz",
        "email": "ayse@example.com",
        "phone": "+90 555 123 4567",
        "subject": "Fiyat bilgisi",
        "message": "Merhaba, bilgi almak istiyorum.",
    }
