"""Shared pytest fixtures for deliveryctl tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from deliveryctl.config.settings import DeliverySettings
from deliveryctl.domain.models import Customer, DeliveryAgent
from deliveryctl.infrastructure.database.engine import init_database
from deliveryctl.infrastructure.store import Store


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables and views created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary store directory, isolated from any ambient config."""
    monkeypatch.delenv("DELIVERYCTL_CONFIG", raising=False)
    return tmp_path


@pytest.fixture
def store(store_root: Path) -> Store:
    """Empty store on a temp directory (no entry-point plugins)."""
    settings = DeliverySettings.from_cli(store_root=store_root, rules={"plugins": False})
    s = Store(settings)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def seeded_store(store: Store) -> Store:
    """Store with customers 106 and 107 and idle agents 1, 2 and 3."""
    with store.transaction() as uow:
        uow.add_customer(Customer(id=106, name="Asha Rao", age=29, address="12 MG Road"))
        uow.add_customer(Customer(id=107, name="Vikram Das", age=41, address="4 Park Street"))
        uow.add_agent(DeliveryAgent(id=1, name="Ravi", phone="9800000001"))
        uow.add_agent(DeliveryAgent(id=2, name="Meera", phone="9800000002"))
        uow.add_agent(DeliveryAgent(id=3, name="Kabir"))
    return store


@pytest.fixture
def _isolated_store(store_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp store root so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_store")`` on command test
    classes. Tests that need the path can also request ``tmp_path`` directly
    (pytest deduplicates, it's the same directory).
    """
    (store_root / "deliveryctl.toml").write_text("[rules]\nplugins = false\n")
    monkeypatch.chdir(store_root)
