"""
Unit Tests for Settings and Logging.

Tests environment-driven settings, building a configuration from settings,
and the structlog processors for run IDs, context and redaction.
"""

import logging
from pathlib import Path

import pytest
import structlog

from dbreactor.config.settings import DbReactorSettings
from dbreactor.core.models import ScriptExecutionOrder, SeedStrategy
from dbreactor.discovery.builder import ScriptMigrationBuilder
from dbreactor.discovery.downgrade import DowngradeMatchingMode
from dbreactor.engine.configuration import ReactorConfiguration
from dbreactor.engine.reactor import DbReactorEngine
from dbreactor.journal.memory import InMemoryMigrationJournal
from dbreactor.observability.logging import (
    REDACTED,
    LogContext,
    add_log_context,
    add_run_id,
    censor_sensitive_data,
    configure_logging,
    new_run_id,
)
from dbreactor.testing.fakes import NullConnectionManager, RecordingScriptExecutor


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Test cases for DbReactorSettings."""

    def test_environment_values(self, test_settings: DbReactorSettings) -> None:
        """Test values are read from prefixed environment variables."""
        assert test_settings.neo4j.uri == "bolt://localhost:7687"
        assert test_settings.neo4j.password.get_secret_value() == "password123"
        assert test_settings.allow_downgrades is True
        assert test_settings.variables == {"Environment": "test"}

    def test_defaults(self, test_settings: DbReactorSettings) -> None:
        """Test defaults for unset values."""
        assert test_settings.execution_order == ScriptExecutionOrder.BY_NAME_ASCENDING
        assert test_settings.fallback_seed_strategy == SeedStrategy.RUN_ONCE
        assert test_settings.global_seed_strategy is None
        assert test_settings.enable_variables is True
        assert test_settings.neo4j.journal_label == "MigrationJournal"

    def test_password_not_in_repr(self, test_settings: DbReactorSettings) -> None:
        """Test the password is kept secret."""
        assert "password123" not in repr(test_settings.neo4j)

    @pytest.mark.parametrize("value", ["RUN_ALWAYS", "run_always", "run-always", " Run-Always "])
    def test_strategy_spellings(self, value: str) -> None:
        """Test seed strategies accept underscore and case variants."""
        settings = DbReactorSettings(global_seed_strategy=value)
        assert settings.global_seed_strategy == SeedStrategy.RUN_ALWAYS

    def test_enum_case_insensitive(self) -> None:
        """Test ordering and downgrade mode are case-insensitive."""
        settings = DbReactorSettings(execution_order="BY_NAME_DESCENDING", downgrade_mode="SUFFIX")

        assert settings.execution_order == ScriptExecutionOrder.BY_NAME_DESCENDING
        assert settings.downgrade_mode == DowngradeMatchingMode.SUFFIX


class TestConfigurationFromSettings:
    """Test cases for ReactorConfiguration.from_settings."""

    @pytest.mark.asyncio
    async def test_directories_become_providers(self, tmp_path: Path) -> None:
        """Test a settings-built configuration runs upgrades with downgrades paired."""
        upgrades = tmp_path / "upgrades"
        downgrades = tmp_path / "downgrades"
        upgrades.mkdir()
        downgrades.mkdir()
        (upgrades / "001_Users.sql").write_text("CREATE TABLE Users (Id INT)", encoding="utf-8")
        (downgrades / "001_Users.sql").write_text("DROP TABLE Users", encoding="utf-8")

        settings = DbReactorSettings(
            scripts_directory=upgrades,
            downgrades_directory=downgrades,
            allow_downgrades=True,
        )
        journal = InMemoryMigrationJournal()
        config = ReactorConfiguration.from_settings(
            settings,
            connection_manager=NullConnectionManager(),
            script_executor=RecordingScriptExecutor(),
            migration_journal=journal,
        )

        assert isinstance(config.migration_builder, ScriptMigrationBuilder)
        assert config.validate_configuration() == []

        result = await DbReactorEngine(config).run()

        assert result.successful
        assert journal.entries[0].downgrade_script == "DROP TABLE Users"

    def test_seeding_without_directory_is_invalid(self) -> None:
        """Test seeding needs a seed directory."""
        settings = DbReactorSettings(scripts_directory=Path("scripts"), enable_seeding=True)
        config = ReactorConfiguration.from_settings(
            settings,
            connection_manager=NullConnectionManager(),
            script_executor=RecordingScriptExecutor(),
            migration_journal=InMemoryMigrationJournal(),
        )

        assert config.validate_configuration() == [
            "Seeding is enabled but no seed journal is configured.",
            "Seeding is enabled but no seed script provider is configured.",
        ]


# =============================================================================
# Logging
# =============================================================================


class TestLogging:
    """Test cases for logging processors."""

    def test_censor_sensitive_data(self) -> None:
        """Test sensitive keys are redacted, including nested variables."""
        event = censor_sensitive_data(
            None,
            "info",
            {
                "event": "Connecting",
                "password": "hunter2",
                "variables": {"DbPassword": "s3cret", "Environment": "prod"},
                "count": 3,
            },
        )

        assert event["password"] == REDACTED
        assert event["variables"] == {"DbPassword": REDACTED, "Environment": "prod"}
        assert event["event"] == "Connecting"
        assert event["count"] == 3

    def test_log_context_sets_run_id(self) -> None:
        """Test run ID and context are visible inside the block only."""
        with LogContext(run_id="abc123", operation="run"):
            inside = add_log_context(None, "info", add_run_id(None, "info", {"event": "x"}))

        outside = add_log_context(None, "info", add_run_id(None, "info", {"event": "y"}))

        assert inside == {"event": "x", "run_id": "abc123", "operation": "run"}
        assert outside == {"event": "y"}

    def test_context_does_not_override_event_keys(self) -> None:
        """Test explicit event values win over bound context."""
        with LogContext(migration="001_A"):
            event = add_log_context(None, "info", {"event": "x", "migration": "002_B"})

        assert event["migration"] == "002_B"

    def test_new_run_id(self) -> None:
        """Test run IDs are short and distinct."""
        first, second = new_run_id(), new_run_id()

        assert len(first) == 12
        assert first != second

    def test_configure_logging_quiets_driver(self) -> None:
        """Test configuration lowers the Neo4j driver's verbosity."""
        try:
            configure_logging(level="DEBUG", format="json")
            assert logging.getLogger("neo4j").level == logging.WARNING
        finally:
            structlog.reset_defaults()
