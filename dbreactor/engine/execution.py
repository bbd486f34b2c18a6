"""
Script Execution Service.

Executes a single upgrade or downgrade and keeps the journal in step:
- Variable substitution before execution (the stored hash never changes)
- Content generation for code migrations, which read variables themselves
- Duration measured around the executor call
- Journal write on upgrade success, journal removal on downgrade success
"""

import time
from collections.abc import Callable, Mapping
from datetime import timedelta

import structlog

from dbreactor.core.cancellation import CancellationToken, ensure_token
from dbreactor.core.code_scripts import CodeMigrationScript, CodeScriptContext
from dbreactor.core.exceptions import DowngradeUnsupportedError, ExecutionError
from dbreactor.core.interfaces import ConnectionManager, MigrationJournal, ScriptExecutor
from dbreactor.core.models import ExecutionResult, Migration, MigrationJournalEntry, Script
from dbreactor.core.variables import substitute_variables

logger = structlog.get_logger(__name__)

UPGRADE_FAILED = "Failed to execute migration script '{name}': {message}"
DOWNGRADE_FAILED = "Failed to execute downgrade script '{name}': {message}"
DOWNGRADE_UNSUPPORTED = "Migration {name} does not support downgrade."


class ScriptExecutionService:
    """
    Runs migration scripts through the configured executor.

    ``variables`` is applied only when non-empty; pass None to disable
    substitution entirely. ``clock`` returns seconds and is used for timing.
    """

    def __init__(
        self,
        executor: ScriptExecutor,
        connection_manager: ConnectionManager,
        journal: MigrationJournal,
        variables: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._executor = executor
        self._connection_manager = connection_manager
        self._journal = journal
        self._variables = variables
        self._clock = clock

    def _substitute(self, content: str | None) -> str | None:
        if content is None or not self._variables:
            return content
        return substitute_variables(content, self._variables)

    def _elapsed(self, started: float) -> timedelta:
        return timedelta(seconds=self._clock() - started)

    async def _generate(self, script: CodeMigrationScript, name: str) -> tuple[str, Script | None]:
        """Upgrade content and downgrade script produced by a code migration."""
        code_script = script.code_script
        assert code_script is not None
        context = CodeScriptContext(self._connection_manager, self._variables or {})

        try:
            content = await code_script.get_upgrade_script(context)
            downgrade_content = None
            if code_script.supports_downgrade:
                downgrade_content = await code_script.get_downgrade_script(context)
        except Exception as e:
            raise ExecutionError(
                UPGRADE_FAILED.format(name=name, message=e),
                script_name=name,
            ) from e

        downgrade = None
        if downgrade_content and downgrade_content.strip():
            downgrade = Script(name=script.name, content=downgrade_content, path=script.path)
        return content, downgrade

    async def execute_upgrade(
        self,
        migration: Migration,
        cancellation: CancellationToken | None = None,
    ) -> ExecutionResult:
        """
        Apply one migration.

        Raises:
            ExecutionError: if the content is empty after substitution or
                the executor raises.
        """
        token = ensure_token(cancellation)
        upgrade = migration.upgrade_script

        if isinstance(upgrade, CodeMigrationScript):
            content, downgrade = await self._generate(upgrade, migration.name)
        else:
            content = self._substitute(upgrade.content)
            downgrade = migration.downgrade_script
            downgrade_content = self._substitute(migration.downgrade_content)
            if downgrade is not None and downgrade_content and downgrade_content.strip():
                downgrade = downgrade.with_content(downgrade_content)

        if not content or not content.strip():
            raise ExecutionError(
                UPGRADE_FAILED.format(name=migration.name, message="upgrade script content is empty"),
                script_name=migration.name,
            )

        started = self._clock()
        try:
            result = await self._executor.execute(
                upgrade.with_content(content),
                self._connection_manager,
                token,
            )
        except Exception as e:
            raise ExecutionError(
                UPGRADE_FAILED.format(name=migration.name, message=e),
                script_name=migration.name,
            ) from e

        result.execution_duration = self._elapsed(started)
        result.script = upgrade

        if not result.successful:
            message = UPGRADE_FAILED.format(name=migration.name, message=result.error_message)
            error = ExecutionError(message, script_name=migration.name)
            if result.error is not None:
                error.__cause__ = result.error
            result.error = error
            result.error_message = message
            logger.warning("Migration script failed", migration=migration.name, error=message)
            return result

        # Keyed by the original upgrade hash; downgrade stored as it will run
        await self._journal.store_executed_migration(
            Migration(
                name=migration.name,
                upgrade_script=upgrade,
                downgrade_script=downgrade,
            ),
            result,
            token,
        )

        logger.info(
            "Migration applied",
            migration=migration.name,
            duration_ms=round(result.execution_duration.total_seconds() * 1000, 2),
        )
        return result

    async def execute_downgrade(
        self,
        entry: MigrationJournalEntry,
        cancellation: CancellationToken | None = None,
    ) -> ExecutionResult:
        """
        Revert one journaled migration.

        Never raises for script problems: missing downgrade content and
        executor failures are reported as a failed result. Journal errors
        propagate.
        """
        token = ensure_token(cancellation)
        name = entry.migration_name

        if not entry.supports_downgrade:
            message = DOWNGRADE_UNSUPPORTED.format(name=name)
            logger.warning("Downgrade not supported", migration=name)
            return ExecutionResult.failure(
                message,
                error=DowngradeUnsupportedError(message, script_name=name),
            )

        content = self._substitute(entry.downgrade_script)
        if not content or not content.strip():
            message = DOWNGRADE_FAILED.format(name=name, message="downgrade script content is empty")
            return ExecutionResult.failure(message, error=ExecutionError(message, script_name=name))

        script = Script(name=name, content=content)
        started = self._clock()
        try:
            result = await self._executor.execute(script, self._connection_manager, token)
        except Exception as e:
            message = DOWNGRADE_FAILED.format(name=name, message=e)
            error = ExecutionError(message, script_name=name)
            error.__cause__ = e
            result = ExecutionResult.failure(message, script=script, error=error)
            result.execution_duration = self._elapsed(started)
            logger.warning("Downgrade script raised", migration=name, error=str(e))
            return result

        result.execution_duration = self._elapsed(started)
        result.script = script

        if not result.successful:
            message = DOWNGRADE_FAILED.format(name=name, message=result.error_message)
            result.error_message = message
            logger.warning("Downgrade script failed", migration=name, error=message)
            return result

        await self._journal.remove_executed_migration(entry.upgrade_script_hash, token)
        logger.info(
            "Migration reverted",
            migration=name,
            duration_ms=round(result.execution_duration.total_seconds() * 1000, 2),
        )
        return result
