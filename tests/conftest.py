"""Common test fixtures for the NoteTree server."""

import tempfile
from pathlib import Path

import pytest

from notetree.config import config
from notetree.models.db_models import init_db
from notetree.models.schema import Identity
from notetree.services.folder_manager import FolderManager
from notetree.services.note_manager import NoteManager
from notetree.services.notetree_service import NoteTreeService
from notetree.services.notifier import ChangeNotifier
from notetree.services.tree_validator import TreeValidator
from notetree.storage.record_store import RecordStore


@pytest.fixture
def temp_db_dir():
    """Create a temporary directory for the database."""
    with tempfile.TemporaryDirectory() as db_dir:
        yield Path(db_dir)


@pytest.fixture
def test_config(temp_db_dir, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "database_path", temp_db_dir / "test_notetree.db")
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "validate_on_startup", True)
    yield config


@pytest.fixture
def engine(test_config):
    """File-backed SQLite engine with the schema created."""
    engine = init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """Record store over the test engine."""
    return RecordStore(engine=engine, lock_timeout=10.0)


@pytest.fixture
def folder_manager(store):
    return FolderManager(store)


@pytest.fixture
def note_manager(store, folder_manager):
    return NoteManager(store, folder_manager)


@pytest.fixture
def tree_validator(store, folder_manager, note_manager):
    return TreeValidator(store, folder_manager, note_manager)


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def events(notifier):
    """Every change event published through ``notifier``, in order."""
    received = []
    notifier.subscribe(received.append)
    return received


@pytest.fixture
def service(store, notifier):
    """NoteTreeService sharing the test store and notifier."""
    return NoteTreeService(store=store, notifier=notifier)


@pytest.fixture
def identity():
    """A caller that passed authentication upstream."""
    return Identity(username="alice", session_id="socket-1")
