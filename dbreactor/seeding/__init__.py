"""
Seeding Module.

Seed data scripts with re-run policies:
- run-once: executed the first time only
- run-always: executed on every run
- run-if-changed: executed when the content hash changes

Policies are picked by folder (``Seeds/run-always/...``) or file name
(``S001_AdminUser_runonce.sql``) conventions, with a configurable fallback.
"""

from dbreactor.seeding.discovery import SeedDiscoveryService
from dbreactor.seeding.orchestrator import SeedOrchestrator, SeedPreviewItem, SeedPreviewResult
from dbreactor.seeding.resolvers import (
    FolderStructureSeedStrategyResolver,
    NamingConventionSeedStrategyResolver,
    SeedStrategyResolver,
    default_resolvers,
)
from dbreactor.seeding.strategies import (
    execution_reason,
    parse_strategy,
    parse_strategy_from_name,
    run_always,
    run_if_changed,
    run_once,
    should_execute,
)

__all__ = [
    # Strategy parsing & decisions
    "parse_strategy",
    "parse_strategy_from_name",
    "run_once",
    "run_always",
    "run_if_changed",
    "should_execute",
    "execution_reason",
    # Resolvers
    "SeedStrategyResolver",
    "FolderStructureSeedStrategyResolver",
    "NamingConventionSeedStrategyResolver",
    "default_resolvers",
    # Discovery & orchestration
    "SeedDiscoveryService",
    "SeedOrchestrator",
    "SeedPreviewItem",
    "SeedPreviewResult",
]
