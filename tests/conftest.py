"""Shared test fixtures for storefront tests.

The environment is configured before the package is imported so that the
module-level settings and engine point at a throwaway SQLite database.
"""

import os
import tempfile
from typing import Optional

_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["JWT_ISSUER"] = "storefront-tests"
os.environ["JWT_AUDIENCE"] = "storefront-tests-clients"
os.environ["KAFKA_START_ATTEMPTS"] = "1"

import pytest  # noqa: E402

from storefront.app import create_app  # noqa: E402
from storefront.common import events  # noqa: E402
from storefront.common.auth import issue_token  # noqa: E402
from storefront.common.database import drop_db, engine  # noqa: E402


@pytest.fixture(autouse=True)
def published(monkeypatch):
    """Replace the Kafka and Redis transports with an in-memory recorder.

    Returns:
        List of events in publish order.
    """
    sent = []

    async def fake_send(event):
        sent.append(event)

    async def fake_broadcast(event):
        return None

    monkeypatch.setattr(events, "_send", fake_send)
    monkeypatch.setattr(events, "_broadcast", fake_broadcast)
    return sent


@pytest.fixture
async def app():
    """Create the application with every service enabled and a fresh schema."""
    application = create_app()
    await drop_db()
    async with application.test_app() as test_app:
        yield test_app
    await drop_db()
    await engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(subject_id: int, role: str, email: Optional[str] = None) -> dict:
    token = issue_token(subject_id, email or f"user{subject_id}@example.com", role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers():
    """Return a factory building Authorization headers for a subject id and role."""
    return bearer


@pytest.fixture
def admin_headers() -> dict:
    return bearer(1, "admin")


@pytest.fixture
def customer_headers() -> dict:
    return bearer(42, "customer")


@pytest.fixture
def other_customer_headers() -> dict:
    return bearer(43, "customer")
