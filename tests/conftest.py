import pytest
import pytest_asyncio
import json
import tempfile
import shutil
import os

from remme.models import Link
from remme.store import RecordStore


@pytest.fixture
def sample_links():
    """Sample links covering tags, notes and distinct creation times."""
    return [
        Link(
            id="6f1c1e9e-0001-4c1b-9d7a-000000000001",
            url="https://docs.python.org",
            title="Python Documentation",
            note="Official docs",
            tags=["python", "documentation"],
            created_at=1_700_000_000_000,
            updated_at=1_700_000_000_000,
        ),
        Link(
            id="6f1c1e9e-0002-4c1b-9d7a-000000000002",
            url="https://github.com",
            title="GitHub",
            note="",
            tags=["development", "git"],
            created_at=1_700_000_100_000,
            updated_at=1_700_000_200_000,
        ),
        Link(
            id="6f1c1e9e-0003-4c1b-9d7a-000000000003",
            url="https://www.example.com/page",
            title="Example Page",
            note="Read later",
            tags=[],
            created_at=1_699_000_000_000,
            updated_at=1_699_000_000_000,
        ),
    ]


@pytest.fixture
def temp_db():
    """Create a temporary database file path."""
    temp_dir = tempfile.mkdtemp(prefix="remme_test_db_")
    db_path = os.path.join(temp_dir, "test.db")
    yield db_path
    shutil.rmtree(temp_dir)


@pytest_asyncio.fixture
async def store(temp_db):
    """An opened RecordStore on a temporary database."""
    record_store = RecordStore(path=temp_db)
    await record_store.open()
    yield record_store
    await record_store.close()


@pytest_asyncio.fixture
async def populated_store(store, sample_links):
    """A store holding the sample links."""
    for link in sample_links:
        await store.add(link)
    return store


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON payload to a file and return its path."""
    def _write(payload, name="import.json"):
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def clean_remme_env(monkeypatch, tmp_path):
    """
    Clean environment without affecting real config.

    Removes REMME_ environment variables, points HOME at a temp directory and
    resets the cached global configuration.
    """
    import remme.config

    for key in list(os.environ.keys()):
        if key.startswith("REMME_"):
            monkeypatch.delenv(key, raising=False)

    mock_home = tmp_path / "home"
    mock_home.mkdir()
    monkeypatch.setenv("HOME", str(mock_home))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(remme.config, "_config", None)

    return tmp_path
