"""
In-memory journals.

Process-local MigrationJournal and SeedJournal implementations for tests,
previews and embedding hosts that keep state elsewhere.
"""

from datetime import datetime, timedelta, timezone

import structlog

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.exceptions import JournalError
from dbreactor.core.interfaces import ConnectionManager, MigrationJournal, SeedJournal
from dbreactor.core.models import (
    ExecutionResult,
    Migration,
    MigrationJournalEntry,
    Seed,
    SeedJournalEntry,
)

logger = structlog.get_logger(__name__)


class InMemoryMigrationJournal(MigrationJournal):
    """
    Migration journal backed by a list.

    Ids increase monotonically and are never reused; a second entry with
    the same upgrade hash is rejected with JournalError.
    """

    def __init__(self, entries: list[MigrationJournalEntry] | None = None) -> None:
        self._entries: list[MigrationJournalEntry] = list(entries or [])
        self._next_id = max((e.id for e in self._entries), default=0) + 1
        self.table_created = False

    @property
    def entries(self) -> list[MigrationJournalEntry]:
        return list(self._entries)

    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.table_created = True

    async def has_been_executed(
        self,
        migration: Migration,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        upgrade_hash = migration.upgrade_script.hash
        return any(e.upgrade_script_hash == upgrade_hash for e in self._entries)

    async def store_executed_migration(
        self,
        migration: Migration,
        result: ExecutionResult,
        cancellation: CancellationToken | None = None,
    ) -> None:
        upgrade_hash = migration.upgrade_script.hash
        if any(e.upgrade_script_hash == upgrade_hash for e in self._entries):
            raise JournalError(
                f"Migration '{migration.name}' is already recorded in the journal",
                script_name=migration.name,
            )

        self._entries.append(
            MigrationJournalEntry(
                id=self._next_id,
                upgrade_script_hash=upgrade_hash,
                migration_name=migration.name,
                downgrade_script=migration.downgrade_content,
                applied_at=datetime.now(timezone.utc),
                execution_duration=result.execution_duration,
            )
        )
        self._next_id += 1
        logger.debug("Journal entry stored", migration=migration.name)

    async def remove_executed_migration(
        self,
        upgrade_script_hash: str,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._entries = [e for e in self._entries if e.upgrade_script_hash != upgrade_script_hash]

    async def get_executed_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[MigrationJournalEntry]:
        return sorted(self._entries, key=lambda e: e.id)


class InMemorySeedJournal(SeedJournal):
    """Seed journal backed by a list of executions."""

    def __init__(self) -> None:
        self._entries: list[SeedJournalEntry] = []
        self.table_created = False

    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.table_created = True

    async def has_been_executed(
        self,
        seed: Seed,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        return any(e.seed_name == seed.name for e in self._entries)

    async def get_last_executed_hash(
        self,
        seed_name: str,
        cancellation: CancellationToken | None = None,
    ) -> str | None:
        matching = [e for e in self._entries if e.seed_name == seed_name]
        if not matching:
            return None
        return max(reversed(matching), key=lambda e: e.executed_at).hash

    async def record_execution(
        self,
        seed: Seed,
        executed_at: datetime,
        duration: timedelta = timedelta(0),
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._entries.append(
            SeedJournalEntry(
                seed_name=seed.name,
                hash=seed.hash,
                strategy=seed.strategy,
                executed_at=executed_at,
                execution_duration=duration,
            )
        )

    async def get_executed_seeds(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[SeedJournalEntry]:
        return sorted(self._entries, key=lambda e: e.executed_at)
