"""
Collaborator contracts.

The orchestrator never talks to a concrete store. Everything engine-specific
(connections, script execution, journal persistence, script enumeration)
sits behind these abstract classes. Production implementations live in
``dbreactor.backends``; in-memory implementations live in
``dbreactor.journal.memory`` and ``dbreactor.testing``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta
from typing import Any

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.models import (
    ExecutionResult,
    Migration,
    MigrationJournalEntry,
    Script,
    Seed,
    SeedJournalEntry,
)


class ScriptProvider(ABC):
    """Enumerates the scripts available to a run."""

    @abstractmethod
    async def get_scripts(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Script]:
        """Return the current set of scripts."""


class DowngradeResolver(ABC):
    """Locates the downgrade script paired with an upgrade script."""

    @abstractmethod
    async def find_downgrade_for(
        self,
        upgrade_script: Script,
        cancellation: CancellationToken | None = None,
    ) -> Script | None:
        """Return the downgrade script, or None when there is none."""

    def refresh(self) -> None:
        """Drop anything cached between builds. Called before every build."""


class MigrationBuilder(ABC):
    """Produces the ordered list of migrations for a run."""

    @abstractmethod
    async def build_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Migration]:
        """Return migrations in execution order."""


class ConnectionManager(ABC):
    """
    Scoped access to a connection or session on the target store.

    ``connection()`` must release the handle on every exit path, including
    exceptions and task cancellation.
    """

    @abstractmethod
    def connection(self) -> AbstractAsyncContextManager[Any]:
        """Async context manager yielding a connection/session handle."""


class ScriptExecutor(ABC):
    """Runs script content against the target store."""

    @abstractmethod
    async def execute(
        self,
        script: Script,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> ExecutionResult:
        """
        Execute a script.

        Returns a failed result for store-level failures; may raise for
        unexpected errors.
        """


class MigrationJournal(ABC):
    """Durable record of applied migrations, keyed by upgrade script hash."""

    def set_connection_manager(self, connection_manager: ConnectionManager) -> None:
        """Bind the store connection used by queries. Journals without one ignore it."""

    @abstractmethod
    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Create journal storage if missing."""

    @abstractmethod
    async def has_been_executed(
        self,
        migration: Migration,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        """True if the migration's upgrade hash is recorded."""

    @abstractmethod
    async def store_executed_migration(
        self,
        migration: Migration,
        result: ExecutionResult,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Record a successfully applied migration."""

    @abstractmethod
    async def remove_executed_migration(
        self,
        upgrade_script_hash: str,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Delete the entry for a reverted migration."""

    @abstractmethod
    async def get_executed_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[MigrationJournalEntry]:
        """All entries in application order (oldest first)."""


class SeedJournal(ABC):
    """Execution history of seed scripts."""

    def set_connection_manager(self, connection_manager: ConnectionManager) -> None:
        """Bind the store connection used by queries. Journals without one ignore it."""

    @abstractmethod
    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Create seed journal storage if missing."""

    @abstractmethod
    async def has_been_executed(
        self,
        seed: Seed,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        """True if the seed has any recorded execution."""

    @abstractmethod
    async def get_last_executed_hash(
        self,
        seed_name: str,
        cancellation: CancellationToken | None = None,
    ) -> str | None:
        """Hash of the most recent execution of a seed, or None."""

    @abstractmethod
    async def record_execution(
        self,
        seed: Seed,
        executed_at: datetime,
        duration: timedelta = timedelta(0),
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Record a seed execution."""

    @abstractmethod
    async def get_executed_seeds(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[SeedJournalEntry]:
        """All seed executions, oldest first."""


class DatabaseProvisioner(ABC):
    """Checks for and creates the target database before a run."""

    @abstractmethod
    async def database_exists(self, cancellation: CancellationToken | None = None) -> bool:
        """True if the target database exists."""

    @abstractmethod
    async def create_database(
        self,
        template: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Create the target database, optionally from a creation template."""

    async def ensure_database_exists(
        self,
        template: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        """Create the database when missing. Returns True if it was created."""
        if await self.database_exists(cancellation):
            return False
        await self.create_database(template, cancellation)
        return True
