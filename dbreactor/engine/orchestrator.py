"""
Migration Orchestrator.

High-level migration flow:
- Upgrades: pending migrations in execution order
- Downgrades: journal entries of removed migrations, newest first
- Last downgrade: the most recently applied journal entry

Every batch is sequential and fail-fast. Cancellation is checked before
each script; scripts already applied stay applied.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.exceptions import ExecutionError
from dbreactor.core.interfaces import ConnectionManager, DatabaseProvisioner, MigrationJournal
from dbreactor.core.models import ExecutionResult, Migration, ReactorResult
from dbreactor.engine.execution import ScriptExecutionService
from dbreactor.engine.filtering import MigrationFilteringService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CANCELLED_MESSAGE = "Operation cancelled"


def cancelled_result(scripts: Sequence[ExecutionResult] = ()) -> ReactorResult:
    return ReactorResult(
        successful=False,
        scripts=tuple(scripts),
        error_message=CANCELLED_MESSAGE,
        cancelled=True,
    )


class MigrationOrchestrator:
    """
    Runs upgrade and downgrade batches.

    Execution failures become failed ReactorResults naming the script.
    Journal and provisioning errors are not caught and reach the caller
    unchanged. With a provisioner, the database is created if missing
    before the journal is prepared for upgrades and downgrades.
    """

    def __init__(
        self,
        filtering: MigrationFilteringService,
        execution: ScriptExecutionService,
        journal: MigrationJournal,
        connection_manager: ConnectionManager,
        allow_downgrades: bool = False,
        provisioner: DatabaseProvisioner | None = None,
        creation_template: str | None = None,
    ) -> None:
        self._filtering = filtering
        self._execution = execution
        self._journal = journal
        self._connection_manager = connection_manager
        self.allow_downgrades = allow_downgrades
        self._provisioner = provisioner
        self._creation_template = creation_template

    async def _prepare_store(self, token: CancellationToken) -> None:
        if self._provisioner is not None:
            logger.info("Ensuring database exists")
            if await self._provisioner.ensure_database_exists(self._creation_template, token):
                logger.info("Database created")
        await self._journal.ensure_table_exists(self._connection_manager, token)

    async def _run_batch(
        self,
        items: Sequence[T],
        name_of: Callable[[T], str],
        execute: Callable[[T], Awaitable[ExecutionResult]],
        token: CancellationToken,
        failure_prefix: str,
    ) -> ReactorResult:
        results: list[ExecutionResult] = []

        for item in items:
            if token.is_cancelled:
                logger.warning("Batch cancelled", executed=len(results), remaining=len(items) - len(results))
                return cancelled_result(results)

            name = name_of(item)
            result = await execute(item)
            results.append(result)

            if not result.successful:
                message = f"{failure_prefix}: {name}. {result.error_message}"
                logger.error("Script failed, stopping batch", script=name, error=result.error_message)
                return ReactorResult(
                    successful=False,
                    scripts=tuple(results),
                    error=result.error,
                    error_message=message,
                )

        return ReactorResult(successful=True, scripts=tuple(results))

    async def _execute_upgrade(self, migration: Migration, token: CancellationToken) -> ExecutionResult:
        try:
            return await self._execution.execute_upgrade(migration, token)
        except ExecutionError as e:
            return ExecutionResult.failure(e.message, script=migration.upgrade_script, error=e)

    async def apply_upgrades(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """Apply every pending migration in execution order."""
        token = ensure_token(cancellation)
        logger.info("Starting database migration")

        await self._prepare_store(token)

        try:
            pending = await self._filtering.get_pending_upgrades(token)
        except OperationCancelled:
            return cancelled_result()

        if not pending:
            logger.info("No pending migrations found")
            return ReactorResult(successful=True)

        logger.info("Pending migrations found", count=len(pending))
        result = await self._run_batch(
            pending,
            lambda m: m.name,
            lambda m: self._execute_upgrade(m, token),
            token,
            "Failed to execute script",
        )

        logger.info("Database migration completed", successful=result.successful)
        return result

    async def apply_downgrades(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """Revert journaled migrations whose scripts no longer exist."""
        token = ensure_token(cancellation)

        if not self.allow_downgrades:
            logger.info("Downgrades are disabled, no changes will be reverted")
            return ReactorResult(successful=True)

        await self._prepare_store(token)

        try:
            entries = await self._filtering.get_entries_to_downgrade(token)
        except OperationCancelled:
            return cancelled_result()

        if not entries:
            logger.info("No migrations found for downgrade")
            return ReactorResult(successful=True)

        logger.info("Migrations to downgrade found", count=len(entries))
        result = await self._run_batch(
            entries,
            lambda e: e.migration_name,
            lambda e: self._execution.execute_downgrade(e, token),
            token,
            "Failed to revert script",
        )

        logger.info("Database downgrade completed", successful=result.successful)
        return result

    async def apply_last_downgrade(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """
        Revert the most recently applied migration.

        The entry is reverted whether or not its source script still exists.
        """
        token = ensure_token(cancellation)

        if not self.allow_downgrades:
            message = "Downgrades are not enabled in configuration."
            logger.warning("Last downgrade refused", reason=message)
            return ReactorResult(successful=False, error_message=message)

        await self._journal.ensure_table_exists(self._connection_manager, token)
        entries = await self._journal.get_executed_migrations(token)

        if not entries:
            logger.info("Journal is empty, nothing to downgrade")
            return ReactorResult(successful=True, error_message="No migrations found to downgrade.")

        last = entries[-1]
        logger.info("Reverting last applied migration", migration=last.migration_name)
        return await self._run_batch(
            [last],
            lambda e: e.migration_name,
            lambda e: self._execution.execute_downgrade(e, token),
            token,
            "Failed to revert script",
        )

    async def execute_migrations(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """Upgrades, then downgrades of removed migrations when allowed."""
        token = ensure_token(cancellation)
        logger.info("Starting database reactor process")

        upgrade = await self.apply_upgrades(token)
        scripts = list(upgrade.scripts)

        if upgrade.cancelled:
            return cancelled_result(scripts)
        if not upgrade.successful:
            message = f"Upgrade process failed: {upgrade.error_message}"
            logger.error("Upgrade process failed", error=upgrade.error_message)
            return ReactorResult(
                successful=False,
                scripts=tuple(scripts),
                error=upgrade.error,
                error_message=message,
            )

        if self.allow_downgrades:
            downgrade = await self.apply_downgrades(token)
            scripts.extend(downgrade.scripts)

            if downgrade.cancelled:
                return cancelled_result(scripts)
            if not downgrade.successful:
                message = f"Downgrade process failed: {downgrade.error_message}"
                logger.error("Downgrade process failed", error=downgrade.error_message)
                return ReactorResult(
                    successful=False,
                    scripts=tuple(scripts),
                    error=downgrade.error,
                    error_message=message,
                )

        logger.info("Database reactor process completed", executed=len(scripts))
        return ReactorResult(successful=True, scripts=tuple(scripts))
