"""
Unit Tests for Database Provisioning.

Tests that runs create a missing database before touching the journal,
how previews report a missing database, configuration validation and the
Neo4j provisioner against a mocked system database.
"""

from collections.abc import Callable
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest
from neo4j.exceptions import Neo4jError

from dbreactor.backends.neo4j.provisioner import Neo4jDatabaseProvisioner
from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.exceptions import ProvisioningError
from dbreactor.core.interfaces import DatabaseProvisioner
from dbreactor.engine.configuration import ReactorConfiguration
from dbreactor.engine.reactor import DbReactorEngine
from dbreactor.journal.memory import InMemoryMigrationJournal
from dbreactor.testing.fakes import RecordingScriptExecutor


class InMemoryProvisioner(DatabaseProvisioner):
    """Provisioner that tracks one database and records calls."""

    def __init__(self, exists: bool = False, calls: list[str] | None = None) -> None:
        self.exists = exists
        self.calls = calls if calls is not None else []
        self.templates: list[str | None] = []

    async def database_exists(self, cancellation: CancellationToken | None = None) -> bool:
        self.calls.append("database_exists")
        return self.exists

    async def create_database(
        self,
        template: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.calls.append("create_database")
        self.templates.append(template)
        self.exists = True


def track_journal(journal: InMemoryMigrationJournal, calls: list[str]) -> None:
    original = journal.ensure_table_exists

    async def ensure_table_exists(*args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        calls.append("ensure_table_exists")
        await original(*args, **kwargs)

    journal.ensure_table_exists = ensure_table_exists  # type: ignore[method-assign]


# =============================================================================
# Engine Runs
# =============================================================================


class TestProvisioningRuns:
    """Test cases for database creation during runs."""

    @pytest.mark.asyncio
    async def test_database_created_before_journal(
        self,
        reactor_config: ReactorConfiguration,
        journal: InMemoryMigrationJournal,
        executor: RecordingScriptExecutor,
    ) -> None:
        """Test a missing database is created before the journal is prepared."""
        calls: list[str] = []
        provisioner = InMemoryProvisioner(exists=False, calls=calls)
        track_journal(journal, calls)
        config = replace(
            reactor_config,
            database_provisioner=provisioner,
            create_database_if_not_exists=True,
            database_creation_template="CREATE DATABASE `{database}` OPTIONS {}",
        )

        result = await DbReactorEngine(config).apply_upgrades()

        assert result.successful
        assert calls[:3] == ["database_exists", "create_database", "ensure_table_exists"]
        assert provisioner.templates == ["CREATE DATABASE `{database}` OPTIONS {}"]
        assert len(executor.executed) == 2

    @pytest.mark.asyncio
    async def test_existing_database_not_created(self, reactor_config: ReactorConfiguration) -> None:
        """Test an existing database is left alone."""
        provisioner = InMemoryProvisioner(exists=True)
        config = replace(reactor_config, database_provisioner=provisioner, create_database_if_not_exists=True)

        result = await DbReactorEngine(config).run()

        assert result.successful
        assert "create_database" not in provisioner.calls

    @pytest.mark.asyncio
    async def test_creation_disabled(self, reactor_config: ReactorConfiguration) -> None:
        """Test a provisioner alone does not create anything during runs."""
        provisioner = InMemoryProvisioner(exists=True)
        config = replace(reactor_config, database_provisioner=provisioner)

        await DbReactorEngine(config).apply_upgrades()

        assert provisioner.calls == []

    @pytest.mark.asyncio
    async def test_provisioning_error_propagates(self, reactor_config: ReactorConfiguration) -> None:
        """Test provisioning failures reach the caller like journal failures."""
        provisioner = InMemoryProvisioner()
        provisioner.create_database = AsyncMock(  # type: ignore[method-assign]
            side_effect=ProvisioningError("access denied", operation="creation")
        )
        config = replace(reactor_config, database_provisioner=provisioner, create_database_if_not_exists=True)

        with pytest.raises(ProvisioningError):
            await DbReactorEngine(config).apply_upgrades()

    def test_creation_needs_provisioner(self, reactor_config: ReactorConfiguration) -> None:
        """Test enabling creation without a provisioner is a configuration error."""
        errors = replace(reactor_config, create_database_if_not_exists=True).validate_configuration()
        assert errors == ["Database creation is enabled but no database provisioner is configured."]


# =============================================================================
# Previews
# =============================================================================


class TestProvisioningPreview:
    """Test cases for previews against a missing database."""

    @pytest.mark.asyncio
    async def test_missing_database_would_be_created(self, reactor_config: ReactorConfiguration) -> None:
        """Test every migration is pending when the database would be created."""
        provisioner = InMemoryProvisioner(exists=False)
        config = replace(reactor_config, database_provisioner=provisioner, create_database_if_not_exists=True)

        preview = await DbReactorEngine(config).run_preview()

        assert not preview.database_exists
        assert preview.pending_upgrades == 2
        assert "create_database" not in provisioner.calls

    @pytest.mark.asyncio
    async def test_missing_database_without_creation(self, reactor_config: ReactorConfiguration) -> None:
        """Test the preview is empty when the database is missing and creation is off."""
        config = replace(reactor_config, database_provisioner=InMemoryProvisioner(exists=False))

        preview = await DbReactorEngine(config).run_preview()

        assert not preview.database_exists
        assert preview.total == 0
        assert preview.to_dict()["database_exists"] is False


# =============================================================================
# Neo4j Provisioner
# =============================================================================


@pytest.fixture
def system_manager(session_factory: Callable[..., MagicMock]) -> Callable[..., MagicMock]:
    """Factory for a connection manager whose sessions return given records."""

    def _make(records: list[dict[str, str]] | None = None) -> MagicMock:
        manager = MagicMock()
        manager.database = "movies"
        manager.connection.return_value = session_factory(records)
        return manager

    return _make


class TestNeo4jDatabaseProvisioner:
    """Test cases for Neo4jDatabaseProvisioner."""

    @pytest.mark.asyncio
    async def test_database_exists(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test the lookup runs on the system database."""
        manager = system_manager([{"name": "movies"}])
        provisioner = Neo4jDatabaseProvisioner(manager)

        assert await provisioner.database_exists()

        manager.connection.assert_called_with(database="system")
        session = manager.connection.return_value
        query, parameters = session.run.call_args.args
        assert query.startswith("SHOW DATABASES")
        assert parameters == {"name": "movies"}

    @pytest.mark.asyncio
    async def test_database_missing(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test no records means the database is missing."""
        assert not await Neo4jDatabaseProvisioner(system_manager([])).database_exists()

    @pytest.mark.asyncio
    async def test_create_with_default_template(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test the default creation statement waits for the database."""
        manager = system_manager([])
        provisioner = Neo4jDatabaseProvisioner(manager, database="sales-eu")

        created = await provisioner.ensure_database_exists()

        assert created
        session = manager.connection.return_value
        assert session.run.call_args.args[0] == "CREATE DATABASE `sales-eu` IF NOT EXISTS WAIT"

    @pytest.mark.asyncio
    async def test_create_with_template(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test a creation template gets the database name."""
        manager = system_manager([])
        provisioner = Neo4jDatabaseProvisioner(manager)

        await provisioner.create_database("CREATE DATABASE `{database}` TOPOLOGY 3 PRIMARIES")

        session = manager.connection.return_value
        assert session.run.call_args.args[0] == "CREATE DATABASE `movies` TOPOLOGY 3 PRIMARIES"

    @pytest.mark.asyncio
    async def test_driver_error_becomes_provisioning_error(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test Neo4j errors are raised as ProvisioningError."""
        manager = system_manager()
        manager.connection.return_value.run.side_effect = Neo4jError("Unsupported administration command")
        provisioner = Neo4jDatabaseProvisioner(manager)

        with pytest.raises(ProvisioningError) as exc_info:
            await provisioner.create_database()

        assert exc_info.value.operation == "creation"

    def test_rejects_invalid_name(self, system_manager: Callable[..., MagicMock]) -> None:
        """Test names that cannot be Neo4j databases are refused up front."""
        with pytest.raises(ValueError):
            Neo4jDatabaseProvisioner(system_manager(), database="1`; DROP")
