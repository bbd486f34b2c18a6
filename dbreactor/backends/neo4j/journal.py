"""
Neo4j Journals.

Applied migrations and seed executions stored as nodes:
- ``(:MigrationJournal)`` one node per applied migration, unique on
  ``upgrade_script_hash``, ordered by a monotonically increasing ``id``
- ``(:SeedJournal)`` one node per seed execution

Timestamps are stored as ISO-8601 UTC strings. Every store failure is
logged and re-raised as JournalError.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from neo4j.exceptions import DriverError, Neo4jError

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.exceptions import JournalError
from dbreactor.core.interfaces import ConnectionManager, MigrationJournal, SeedJournal
from dbreactor.core.models import (
    ExecutionResult,
    Migration,
    MigrationJournalEntry,
    Seed,
    SeedJournalEntry,
    SeedStrategy,
)

logger = structlog.get_logger(__name__)

LABEL_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_label(label: str) -> str:
    if not LABEL_PATTERN.match(label):
        raise ValueError(f"Invalid journal label: {label!r}")
    return label


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if hasattr(value, "to_native"):
        return value.to_native()
    return datetime.fromisoformat(value)


class _Neo4jJournalBase:
    """Shared query plumbing over a bound connection manager."""

    def __init__(self, connection_manager: ConnectionManager | None, label: str) -> None:
        self._connection_manager = connection_manager
        self.label = _check_label(label)

    def set_connection_manager(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager

    async def _query(
        self,
        operation: str,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        if self._connection_manager is None:
            raise JournalError(
                "Journal has no connection manager; pass one to the constructor or set_connection_manager",
                operation=operation,
            )

        try:
            async with self._connection_manager.connection() as session:
                result = await session.run(query, parameters or {})
                records: list[dict[str, Any]] = await result.data()
        except (Neo4jError, DriverError, OSError) as e:
            logger.error("Journal query failed", label=self.label, operation=operation, error=str(e))
            raise JournalError(f"Journal {operation} failed: {e}", operation=operation) from e

        logger.debug("Journal query executed", label=self.label, operation=operation, result_count=len(records))
        return records


class Neo4jMigrationJournal(_Neo4jJournalBase, MigrationJournal):
    """
    MigrationJournal stored in Neo4j.

    Usage:
        ```python
        journal = Neo4jMigrationJournal(connection_manager)
        await journal.ensure_table_exists(connection_manager)
        entries = await journal.get_executed_migrations()
        ```
    """

    def __init__(
        self,
        connection_manager: ConnectionManager | None = None,
        label: str = "MigrationJournal",
    ) -> None:
        super().__init__(connection_manager, label)

    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.set_connection_manager(connection_manager)
        constraint = f"{self.label.lower()}_hash_unique"
        await self._query(
            "ensure_table_exists",
            f"CREATE CONSTRAINT {constraint} IF NOT EXISTS "
            f"FOR (m:{self.label}) REQUIRE m.upgrade_script_hash IS UNIQUE",
        )
        logger.info("Migration journal ready", label=self.label)

    async def has_been_executed(
        self,
        migration: Migration,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        records = await self._query(
            "has_been_executed",
            f"MATCH (m:{self.label} {{upgrade_script_hash: $hash}}) RETURN count(m) AS count",
            {"hash": migration.upgrade_script.hash},
        )
        return bool(records) and records[0]["count"] > 0

    async def store_executed_migration(
        self,
        migration: Migration,
        result: ExecutionResult,
        cancellation: CancellationToken | None = None,
    ) -> None:
        query = f"""
        OPTIONAL MATCH (e:{self.label})
        WITH coalesce(max(e.id), 0) + 1 AS next_id
        CREATE (m:{self.label} {{
            id: next_id,
            upgrade_script_hash: $hash,
            migration_name: $name,
            downgrade_script: $downgrade,
            applied_at: $applied_at,
            execution_duration_ms: $duration_ms
        }})
        RETURN m.id AS id
        """
        await self._query(
            "store_executed_migration",
            query,
            {
                "hash": migration.upgrade_script.hash,
                "name": migration.name,
                "downgrade": migration.downgrade_content,
                "applied_at": datetime.now(timezone.utc).isoformat(),
                "duration_ms": result.execution_duration.total_seconds() * 1000,
            },
        )

    async def remove_executed_migration(
        self,
        upgrade_script_hash: str,
        cancellation: CancellationToken | None = None,
    ) -> None:
        await self._query(
            "remove_executed_migration",
            f"MATCH (m:{self.label} {{upgrade_script_hash: $hash}}) DELETE m",
            {"hash": upgrade_script_hash},
        )

    async def get_executed_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[MigrationJournalEntry]:
        query = f"""
        MATCH (m:{self.label})
        RETURN m.id AS id,
               m.upgrade_script_hash AS upgrade_script_hash,
               m.migration_name AS migration_name,
               m.downgrade_script AS downgrade_script,
               m.applied_at AS applied_at,
               m.execution_duration_ms AS execution_duration_ms
        ORDER BY m.id
        """
        records = await self._query("get_executed_migrations", query)
        return [
            MigrationJournalEntry(
                id=r["id"],
                upgrade_script_hash=r["upgrade_script_hash"],
                migration_name=r["migration_name"],
                downgrade_script=r["downgrade_script"],
                applied_at=_parse_time(r["applied_at"]),
                execution_duration=timedelta(milliseconds=r["execution_duration_ms"] or 0),
            )
            for r in records
        ]


class Neo4jSeedJournal(_Neo4jJournalBase, SeedJournal):
    """SeedJournal stored in Neo4j, one node per execution."""

    def __init__(
        self,
        connection_manager: ConnectionManager | None = None,
        label: str = "SeedJournal",
    ) -> None:
        super().__init__(connection_manager, label)

    async def ensure_table_exists(
        self,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.set_connection_manager(connection_manager)
        index = f"{self.label.lower()}_seed_name"
        await self._query(
            "ensure_table_exists",
            f"CREATE INDEX {index} IF NOT EXISTS FOR (s:{self.label}) ON (s.seed_name)",
        )
        logger.info("Seed journal ready", label=self.label)

    async def has_been_executed(
        self,
        seed: Seed,
        cancellation: CancellationToken | None = None,
    ) -> bool:
        records = await self._query(
            "has_been_executed",
            f"MATCH (s:{self.label} {{seed_name: $name}}) RETURN count(s) AS count",
            {"name": seed.name},
        )
        return bool(records) and records[0]["count"] > 0

    async def get_last_executed_hash(
        self,
        seed_name: str,
        cancellation: CancellationToken | None = None,
    ) -> str | None:
        records = await self._query(
            "get_last_executed_hash",
            f"MATCH (s:{self.label} {{seed_name: $name}}) "
            "RETURN s.hash AS hash ORDER BY s.executed_at DESC LIMIT 1",
            {"name": seed_name},
        )
        return records[0]["hash"] if records else None

    async def record_execution(
        self,
        seed: Seed,
        executed_at: datetime,
        duration: timedelta = timedelta(0),
        cancellation: CancellationToken | None = None,
    ) -> None:
        await self._query(
            "record_execution",
            f"CREATE (s:{self.label} {{seed_name: $name, hash: $hash, strategy: $strategy, "
            "executed_at: $executed_at, execution_duration_ms: $duration_ms}})",
            {
                "name": seed.name,
                "hash": seed.hash,
                "strategy": seed.strategy.value,
                "executed_at": executed_at.isoformat(),
                "duration_ms": duration.total_seconds() * 1000,
            },
        )

    async def get_executed_seeds(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[SeedJournalEntry]:
        query = f"""
        MATCH (s:{self.label})
        RETURN s.seed_name AS seed_name,
               s.hash AS hash,
               s.strategy AS strategy,
               s.executed_at AS executed_at,
               s.execution_duration_ms AS execution_duration_ms
        ORDER BY s.executed_at
        """
        records = await self._query("get_executed_seeds", query)
        return [
            SeedJournalEntry(
                seed_name=r["seed_name"],
                hash=r["hash"],
                strategy=SeedStrategy(r["strategy"]),
                executed_at=_parse_time(r["executed_at"]),
                execution_duration=timedelta(milliseconds=r["execution_duration_ms"] or 0),
            )
            for r in records
        ]
