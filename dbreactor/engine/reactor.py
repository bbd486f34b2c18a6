"""
DbReactor Engine.

Public entry point of the orchestrator. Wires the filtering, execution,
preview and seeding services from a ReactorConfiguration and exposes the
run operations.

Usage:
    ```python
    engine = DbReactorEngine(config)

    if await engine.has_pending_upgrades():
        result = await engine.run()
        if not result.successful:
            print(result.error_message)
    ```
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from dbreactor.core.cancellation import CancellationToken, ensure_token
from dbreactor.core.models import Migration, ReactorResult
from dbreactor.engine.configuration import ReactorConfiguration
from dbreactor.engine.execution import ScriptExecutionService
from dbreactor.engine.filtering import MigrationFilteringService
from dbreactor.engine.orchestrator import MigrationOrchestrator, cancelled_result
from dbreactor.engine.preview import RunPreviewResult, RunPreviewService
from dbreactor.observability.logging import LogContext, new_run_id
from dbreactor.seeding.discovery import SeedDiscoveryService
from dbreactor.seeding.orchestrator import SeedOrchestrator, SeedPreviewResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DbReactorEngine:
    """
    Migration and seeding engine.

    The configuration is validated in the constructor; an invalid one
    raises ConfigurationError before anything touches the store. Journals
    are bound to the configured connection manager so the query and
    preview operations work before any run has created journal storage.
    """

    def __init__(self, configuration: ReactorConfiguration) -> None:
        configuration.validate_and_raise()
        self.configuration = configuration

        configuration.migration_journal.set_connection_manager(configuration.connection_manager)
        if configuration.seed_journal is not None:
            configuration.seed_journal.set_connection_manager(configuration.connection_manager)

        self._filtering = MigrationFilteringService(
            journal=configuration.migration_journal,
            providers=configuration.script_providers,
            builder=configuration.migration_builder,
            order=configuration.execution_order,
        )
        execution = ScriptExecutionService(
            executor=configuration.script_executor,
            connection_manager=configuration.connection_manager,
            journal=configuration.migration_journal,
            variables=configuration.effective_variables,
        )
        self._orchestrator = MigrationOrchestrator(
            filtering=self._filtering,
            execution=execution,
            journal=configuration.migration_journal,
            connection_manager=configuration.connection_manager,
            allow_downgrades=configuration.allow_downgrades,
            provisioner=(
                configuration.database_provisioner if configuration.create_database_if_not_exists else None
            ),
            creation_template=configuration.database_creation_template,
        )
        self._preview = RunPreviewService(
            self._filtering,
            provisioner=configuration.database_provisioner,
            create_database=configuration.create_database_if_not_exists,
        )

        self._seeds: SeedOrchestrator | None = None
        if configuration.enable_seeding and configuration.seed_journal is not None:
            self._seeds = SeedOrchestrator(
                discovery=SeedDiscoveryService(
                    configuration.seed_providers,
                    resolvers=configuration.effective_seed_resolvers,
                    global_strategy=configuration.global_seed_strategy,
                    fallback_strategy=configuration.fallback_seed_strategy,
                ),
                journal=configuration.seed_journal,
                executor=configuration.script_executor,
                connection_manager=configuration.connection_manager,
                variables=configuration.effective_variables,
            )

    async def _logged(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        with LogContext(run_id=new_run_id(), operation=operation):
            return await call()

    async def run(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """Upgrades, downgrades when allowed, then seeds when enabled."""
        token = ensure_token(cancellation)

        async def _run() -> ReactorResult:
            migrations = await self._orchestrator.execute_migrations(token)
            if not migrations.successful or self._seeds is None:
                return migrations

            seeds = await self._seeds.execute_seeds(token)
            scripts = migrations.scripts + seeds.scripts
            if seeds.cancelled:
                return cancelled_result(scripts)
            return ReactorResult(
                successful=seeds.successful,
                scripts=scripts,
                error=seeds.error or migrations.error,
                error_message=seeds.error_message or migrations.error_message,
            )

        return await self._logged("run", _run)

    async def apply_upgrades(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        return await self._logged("apply_upgrades", lambda: self._orchestrator.apply_upgrades(cancellation))

    async def apply_downgrades(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        return await self._logged("apply_downgrades", lambda: self._orchestrator.apply_downgrades(cancellation))

    async def apply_last_downgrade(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        return await self._logged(
            "apply_last_downgrade",
            lambda: self._orchestrator.apply_last_downgrade(cancellation),
        )

    async def has_pending_upgrades(self, cancellation: CancellationToken | None = None) -> bool:
        return await self._filtering.has_pending_upgrades(cancellation)

    async def get_pending_upgrades(self, cancellation: CancellationToken | None = None) -> list[Migration]:
        return await self._filtering.get_pending_upgrades(cancellation)

    async def get_applied_upgrades(self, cancellation: CancellationToken | None = None) -> list[Migration]:
        return await self._filtering.get_applied_upgrades(cancellation)

    async def run_preview(self, cancellation: CancellationToken | None = None) -> RunPreviewResult:
        return await self._logged("run_preview", lambda: self._preview.run_preview(cancellation))

    async def execute_seeds(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        if self._seeds is None:
            return ReactorResult(successful=True, error_message="Seeding is not enabled or configured.")
        seeds = self._seeds
        return await self._logged("execute_seeds", lambda: seeds.execute_seeds(cancellation))

    async def preview_seeds(self, cancellation: CancellationToken | None = None) -> SeedPreviewResult:
        if self._seeds is None:
            return SeedPreviewResult()
        seeds = self._seeds
        return await self._logged("preview_seeds", lambda: seeds.preview_seeds(cancellation))


def create_engine(configuration: ReactorConfiguration) -> DbReactorEngine:
    """Create a validated engine."""
    return DbReactorEngine(configuration)
