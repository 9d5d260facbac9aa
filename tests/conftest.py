"""
Shared fixtures: one app per test on its own SQLite file, with the lifespan
entered explicitly so the schema and search sync worker exist.
"""

import os
import tempfile
from datetime import timedelta
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

# Importing the app module builds a default app from the environment; keep it out of the cwd.
_IMPORT_DIR = tempfile.mkdtemp(prefix="task-portal-tests-")
os.environ.setdefault("TASK_PORTAL_DB_PATH", os.path.join(_IMPORT_DIR, "import.db"))
os.environ.setdefault("TASK_PORTAL_LOG_TO_FILE", "0")

from task_portal.app.main import create_app  # noqa: E402
from task_portal.config import Settings  # noqa: E402
from task_portal.domain.task_models import DUE_DATE_FORMAT, utcnow  # noqa: E402


def future(days: int = 5, hour: int = 9) -> str:
    """A valid write-side due date string `days` from now."""
    when = (utcnow() + timedelta(days=days)).replace(hour=hour, minute=30, second=0, microsecond=0)
    return when.strftime(DUE_DATE_FORMAT)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        db_path=str(tmp_path / "tasks.db"),
        log_to_file=False,
        log_level="WARNING",
        search_sync_retry_delay=0.0,
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _make_user(app, name: str, username: str) -> SimpleNamespace:
    identity = app.state.identity
    user = await identity.create_user(name=name, email=f"{username}@example.com", username=username)
    token = await identity.issue_token(user.id)
    return SimpleNamespace(user=user, headers={"Authorization": f"Bearer {token}"})


@pytest.fixture
async def alice(app) -> SimpleNamespace:
    return await _make_user(app, "Alice Liddell", "alice")


@pytest.fixture
async def bob(app) -> SimpleNamespace:
    return await _make_user(app, "Bob Builder", "bob")


@pytest.fixture
def task_payload() -> dict:
    return {
        "title": "Write quarterly report",
        "description": "Numbers for Q3",
        "is_completed": False,
        "priority": "medium",
        "due_date": future(),
    }


@pytest.fixture
def create_task(client):
    async def _create(owner, **fields) -> dict:
        payload = {"title": "Task", "is_completed": False, "priority": "low"}
        payload.update(fields)
        res = await client.post("/api/tasks", json=payload, headers=owner.headers)
        assert res.status_code == 201, res.text
        return res.json()

    return _create


@pytest.fixture
def drain(app):
    async def _drain() -> None:
        await app.state.search_sync.drain()

    return _drain
