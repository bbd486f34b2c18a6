"""
Seed Orchestrator.

Runs seed scripts after migrations:
- Strategy decision per seed against the seed journal
- Sequential, fail-fast execution with variable substitution
- Preview mode reporting what would run and why
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.interfaces import ConnectionManager, ScriptExecutor, SeedJournal
from dbreactor.core.models import ExecutionResult, ReactorResult, Seed
from dbreactor.core.variables import substitute_variables
from dbreactor.seeding.discovery import SeedDiscoveryService
from dbreactor.seeding.strategies import execution_reason, should_execute

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeedPreviewItem:
    """Preview of a single seed decision."""

    seed_name: str
    strategy: str
    would_execute: bool
    reason: str
    seed: Seed | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed_name": self.seed_name,
            "strategy": self.strategy,
            "would_execute": self.would_execute,
            "reason": self.reason,
        }


@dataclass
class SeedPreviewResult:
    """Preview of a seed run."""

    items: list[SeedPreviewItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def to_execute(self) -> int:
        return sum(1 for i in self.items if i.would_execute)

    @property
    def to_skip(self) -> int:
        return self.total - self.to_execute

    @property
    def summary(self) -> str:
        return f"Would execute {self.to_execute} seeds ({self.to_skip} skipped)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "to_execute": self.to_execute,
            "to_skip": self.to_skip,
            "summary": self.summary,
            "items": [i.to_dict() for i in self.items],
        }


class SeedOrchestrator:
    """
    Executes seeds whose strategy says they must run.

    Usage:
        ```python
        orchestrator = SeedOrchestrator(
            discovery=SeedDiscoveryService([FileSystemScriptProvider("seeds", recursive=True)]),
            journal=seed_journal,
            executor=executor,
            connection_manager=connection_manager,
        )
        result = await orchestrator.execute_seeds()
        ```
    """

    def __init__(
        self,
        discovery: SeedDiscoveryService,
        journal: SeedJournal,
        executor: ScriptExecutor,
        connection_manager: ConnectionManager,
        variables: Mapping[str, str] | None = None,
    ) -> None:
        self._discovery = discovery
        self._journal = journal
        self._executor = executor
        self._connection_manager = connection_manager
        self._variables = variables

    async def _select(self, seeds: list[Seed], token: CancellationToken) -> list[Seed]:
        selected = []
        for seed in seeds:
            if await should_execute(seed, self._journal, token):
                selected.append(seed)
        return selected

    async def execute_seeds(self, cancellation: CancellationToken | None = None) -> ReactorResult:
        """Run all seeds that must run now, stopping at the first failure."""
        token = ensure_token(cancellation)
        results: list[ExecutionResult] = []

        logger.info("Starting seed execution")
        await self._journal.ensure_table_exists(self._connection_manager, token)

        try:
            seeds = await self._discovery.get_seeds(token)
        except OperationCancelled:
            return ReactorResult(successful=False, error_message="Operation cancelled", cancelled=True)

        if not seeds:
            logger.info("No seeds found")
            return ReactorResult(successful=True)

        to_run = await self._select(seeds, token)
        if not to_run:
            logger.info("No seeds need to be executed", discovered=len(seeds))
            return ReactorResult(successful=True)

        logger.info("Seeds selected for execution", count=len(to_run), discovered=len(seeds))

        for seed in to_run:
            if token.is_cancelled:
                logger.warning("Seed execution cancelled", executed=len(results))
                return ReactorResult(
                    successful=False,
                    scripts=tuple(results),
                    error_message="Operation cancelled",
                    cancelled=True,
                )

            result = await self._execute_seed(seed, token)
            results.append(result)

            if not result.successful:
                message = f"Failed to execute seed: {seed.name}. {result.error_message}"
                logger.error("Seed failed", seed=seed.name, error=result.error_message)
                return ReactorResult(
                    successful=False,
                    scripts=tuple(results),
                    error=result.error,
                    error_message=message,
                )

            logger.info("Seed executed", seed=seed.name, strategy=seed.strategy.value)

        logger.info("Seed execution completed", executed=len(results))
        return ReactorResult(successful=True, scripts=tuple(results))

    async def _execute_seed(self, seed: Seed, token: CancellationToken) -> ExecutionResult:
        started = time.perf_counter()

        try:
            content = substitute_variables(seed.script.content, self._variables)
            result = await self._executor.execute(
                seed.script.with_content(content),
                self._connection_manager,
                token,
            )
        except Exception as e:
            return ExecutionResult.failure(str(e), script=seed.script, error=e)

        duration = timedelta(seconds=time.perf_counter() - started)
        result.execution_duration = duration
        result.script = seed.script

        if result.successful:
            await self._journal.record_execution(
                seed,
                datetime.now(timezone.utc),
                duration,
                token,
            )
        return result

    async def preview_seeds(self, cancellation: CancellationToken | None = None) -> SeedPreviewResult:
        """Report which seeds would run, without running anything."""
        token = ensure_token(cancellation)
        preview = SeedPreviewResult()

        await self._journal.ensure_table_exists(self._connection_manager, token)
        seeds = await self._discovery.get_seeds(token)

        for seed in seeds:
            would_execute = await should_execute(seed, self._journal, token)
            preview.items.append(
                SeedPreviewItem(
                    seed_name=seed.name,
                    strategy=seed.strategy.value,
                    would_execute=would_execute,
                    reason=execution_reason(seed.strategy, would_execute),
                    seed=seed,
                )
            )

        logger.info("Seed preview completed", summary=preview.summary)
        return preview
