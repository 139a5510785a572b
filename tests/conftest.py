"""Shared test fixtures for paperlane tests."""

from pathlib import Path

import pytest

from paperlane.config import Config, StorageConfig
from paperlane.db import StateDB
from paperlane.diagrams.registry import FlowRegistry
from paperlane.page import Page
from paperlane.runtime import Location, Platform
from paperlane.state import LocalState, MemoryStorage, ThemeMotionStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def config(tmp_path):
    return Config(storage=StorageConfig(db_path=str(tmp_path / "state.db")))


@pytest.fixture()
def tmp_db(config):
    """Create a StateDB backed by a temp file."""
    db = StateDB(config)
    db.init_db()
    yield db
    db.close()


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def local(storage):
    return LocalState(storage)


@pytest.fixture()
def store(local):
    return ThemeMotionStore(local)


@pytest.fixture()
def platform(storage):
    return Platform(storage=storage, location=Location("https://example.org/whitepaper"))


@pytest.fixture(scope="session")
def registry():
    return FlowRegistry.load()


@pytest.fixture(scope="session")
def whitepaper():
    return (FIXTURES / "whitepaper.md").read_text()


@pytest.fixture()
def page(config, platform, registry, whitepaper):
    """A fully booted page over the fixture whitepaper."""
    return Page(config, platform, registry).boot(whitepaper)
