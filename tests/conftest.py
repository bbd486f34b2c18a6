"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing DbReactor: in-memory
collaborators, script factories, a ready-made engine configuration and a
mocked Neo4j driver.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dbreactor.config.settings import DbReactorSettings, get_settings
from dbreactor.core.models import Script
from dbreactor.discovery.providers import StaticScriptProvider
from dbreactor.engine.configuration import ReactorConfiguration
from dbreactor.journal.memory import InMemoryMigrationJournal, InMemorySeedJournal
from dbreactor.testing.fakes import NullConnectionManager, RecordingScriptExecutor


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> DbReactorSettings:
    """Provide settings built from a controlled environment."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_URI": "bolt://localhost:7687",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "DBREACTOR_ALLOW_DOWNGRADES": "true",
            "DBREACTOR_VARIABLES": '{"Environment": "test"}',
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        settings = get_settings()
    get_settings.cache_clear()
    return settings


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def connection_manager() -> NullConnectionManager:
    return NullConnectionManager()


@pytest.fixture
def executor() -> RecordingScriptExecutor:
    return RecordingScriptExecutor()


@pytest.fixture
def journal() -> InMemoryMigrationJournal:
    return InMemoryMigrationJournal()


@pytest.fixture
def seed_journal() -> InMemorySeedJournal:
    return InMemorySeedJournal()


# =============================================================================
# Script Fixtures
# =============================================================================


@pytest.fixture
def make_script() -> Callable[..., Script]:
    """Factory for scripts with content derived from the name."""

    def _make(name: str, content: str | None = None, path: str | None = None) -> Script:
        return Script(name=name, content=content or f"-- {name}\nCREATE (:Marker {{name: '{name}'}})", path=path)

    return _make


@pytest.fixture
def upgrade_scripts(make_script: Callable[..., Script]) -> list[Script]:
    """The two-migration scenario used across engine tests."""
    return [
        make_script("001_CreateTable.sql", "CREATE TABLE Users (Id INT)"),
        make_script("002_AddIndex.sql", "CREATE INDEX IX_Users ON Users (Id)"),
    ]


@pytest.fixture
def upgrade_provider(upgrade_scripts: list[Script]) -> StaticScriptProvider:
    return StaticScriptProvider(upgrade_scripts)


@pytest.fixture
def reactor_config(
    connection_manager: NullConnectionManager,
    executor: RecordingScriptExecutor,
    journal: InMemoryMigrationJournal,
    upgrade_provider: StaticScriptProvider,
) -> ReactorConfiguration:
    """Minimal valid configuration over in-memory collaborators."""
    return ReactorConfiguration(
        connection_manager=connection_manager,
        script_executor=executor,
        migration_journal=journal,
        script_providers=[upgrade_provider],
    )


# =============================================================================
# Neo4j Driver Fixtures
# =============================================================================


def create_mock_session(records: list[dict[str, Any]] | None = None) -> MagicMock:
    """Create a mock AsyncSession whose run() returns the given records."""
    mock_result = MagicMock()
    mock_result.data = AsyncMock(return_value=records or [])
    mock_result.consume = AsyncMock()

    mock_session = MagicMock()
    mock_session.run = AsyncMock(return_value=mock_result)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return mock_session


def create_mock_transaction() -> MagicMock:
    """Create a mock explicit transaction."""
    mock_result = MagicMock()
    mock_result.consume = AsyncMock()

    tx = MagicMock()
    tx.run = AsyncMock(return_value=mock_result)
    tx.commit = AsyncMock()
    tx.close = AsyncMock()
    return tx


@pytest.fixture
def session_factory() -> Callable[..., MagicMock]:
    """Factory for mock sessions returning given records."""
    return create_mock_session


@pytest.fixture
def mock_transaction() -> MagicMock:
    return create_mock_transaction()


@pytest.fixture
def mock_neo4j_session() -> MagicMock:
    return create_mock_session()


@pytest.fixture
def mock_connection_manager(mock_neo4j_session: MagicMock) -> MagicMock:
    """Connection manager whose connection() yields mock_neo4j_session."""
    manager = MagicMock()
    manager.connection.return_value = mock_neo4j_session
    return manager
