"""
Seed Strategy Resolvers.

Resolvers are tried in order; the first one that returns a strategy wins.
"""

from abc import ABC, abstractmethod

from dbreactor.core.models import Script, SeedStrategy
from dbreactor.seeding.strategies import parse_strategy, parse_strategy_from_name


class SeedStrategyResolver(ABC):
    """Maps a seed script to a strategy, or None when it has no opinion."""

    @abstractmethod
    def resolve(self, script: Script) -> SeedStrategy | None:
        ...


class FolderStructureSeedStrategyResolver(SeedStrategyResolver):
    """``Seeds/run-always/S001.sql`` -> RUN_ALWAYS (nearest folder wins)."""

    def resolve(self, script: Script) -> SeedStrategy | None:
        return parse_strategy(script.logical_path)


class NamingConventionSeedStrategyResolver(SeedStrategyResolver):
    """``S001_AdminUser_runonce.sql`` -> RUN_ONCE."""

    def resolve(self, script: Script) -> SeedStrategy | None:
        return parse_strategy_from_name(script.name)


def default_resolvers() -> list[SeedStrategyResolver]:
    """Folder structure first, then naming convention."""
    return [FolderStructureSeedStrategyResolver(), NamingConventionSeedStrategyResolver()]
