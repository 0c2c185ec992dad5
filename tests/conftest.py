import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# TEST ENVIRONMENT
# Must be set BEFORE importing app.main so config.py and database.py
# pick up in-memory SQLite and no external services.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENV"] = "test"
for key in ("SUPABASE_URL", "SUPABASE_KEY", "SMTP_HOST", "NOTIFICATION_SERVICE_URL", "REDIS_URL"):
    os.environ.pop(key, None)

from app.main import app  # noqa: E402
from app.core.database import drop_db, init_db  # noqa: E402
from app.core.exceptions import PublicationServiceError, StorageError  # noqa: E402
from app.core.rate_limiter import limiter  # noqa: E402
from app.core.storage import get_storage_service  # noqa: E402
from app.services.notification_client import NotificationClient, get_notification_client  # noqa: E402
from app.services.publication_client import get_publication_client  # noqa: E402


# ------------------------------------------------------------------
# IN-MEMORY COLLABORATORS
# ------------------------------------------------------------------
class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.calls = []
        self.fail = False

    async def store(self, content, filename, path_prefix, content_type="application/pdf"):
        self.calls.append(("store", filename))
        if self.fail:
            raise StorageError("Failed to upload document to storage.")
        key = f"{path_prefix}{len(self.objects) + 1}.pdf"
        self.objects[key] = content
        return key

    async def signed_url(self, key, ttl_minutes):
        self.calls.append(("signed_url", key))
        if self.fail:
            raise StorageError("Document is temporarily unavailable.")
        return f"https://storage.test/{key}?ttl={ttl_minutes}"

    async def delete(self, key):
        self.calls.append(("delete", key))
        self.objects.pop(key, None)


class FakePublicationClient:
    def __init__(self):
        self.requests = []
        self.fail = False
        self.next_id = 42

    async def create_publication_from_submission(self, payload):
        self.requests.append(payload)
        if self.fail:
            raise PublicationServiceError("Content service is unreachable")
        return self.next_id


class RecordingNotifier(NotificationClient):
    def __init__(self):
        super().__init__(base_url=None)
        self.sent = []

    async def notify(self, user_id, type, title, message, data=None):
        self.sent.append({"user_id": user_id, "type": type, "title": title, "message": message, "data": data})
        return True


# ------------------------------------------------------------------
# FIXTURES
# ------------------------------------------------------------------
@pytest_asyncio.fixture
async def fresh_database():
    await drop_db()
    await init_db()
    limiter.reset()
    yield


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def publications():
    return FakePublicationClient()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(fresh_database, storage, publications, notifier):
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_publication_client] = lambda: publications
    app.dependency_overrides[get_notification_client] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


