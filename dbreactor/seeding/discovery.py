"""
Seed Discovery.

Turns scripts from seed providers into Seed values with a resolved strategy.
Precedence: global strategy, then resolvers in order, then the fallback.
A seed is named by its logical path, so equal file names in different
folders are separate seeds in the journal.
"""

from collections.abc import Iterable

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.exceptions import DbReactorError, DiscoveryError
from dbreactor.core.interfaces import ScriptProvider
from dbreactor.core.models import Script, Seed, SeedStrategy
from dbreactor.seeding.resolvers import SeedStrategyResolver, default_resolvers

logger = structlog.get_logger(__name__)


class SeedDiscoveryService:
    """Discovers seeds and assigns each one a strategy."""

    def __init__(
        self,
        providers: Iterable[ScriptProvider],
        resolvers: Iterable[SeedStrategyResolver] | None = None,
        global_strategy: SeedStrategy | None = None,
        fallback_strategy: SeedStrategy = SeedStrategy.RUN_ONCE,
    ) -> None:
        self._providers = tuple(providers)
        self._resolvers = tuple(resolvers) if resolvers is not None else tuple(default_resolvers())
        self.global_strategy = global_strategy
        self.fallback_strategy = fallback_strategy

    def determine_strategy(self, script: Script) -> SeedStrategy:
        if self.global_strategy is not None:
            return self.global_strategy

        for resolver in self._resolvers:
            strategy = resolver.resolve(script)
            if strategy is not None:
                return strategy

        return self.fallback_strategy

    async def get_seeds(self, cancellation: CancellationToken | None = None) -> list[Seed]:
        token = ensure_token(cancellation)

        scripts: list[Script] = []
        for provider in self._providers:
            try:
                scripts.extend(await provider.get_scripts(token))
            except (DbReactorError, OperationCancelled):
                raise
            except Exception as e:
                raise DiscoveryError(f"Failed to discover seeds: {e}") from e

        seeds = [
            Seed(name=script.logical_path, script=script, strategy=self.determine_strategy(script))
            for script in scripts
        ]

        logger.debug(
            "Seeds discovered",
            count=len(seeds),
            strategies={s.value: sum(1 for seed in seeds if seed.strategy == s) for s in SeedStrategy},
        )
        return seeds
