"""
DbReactor - database schema migration orchestrator.

Discovers versioned change scripts, checks them against a persisted
journal, applies the outstanding ones in a deterministic order, reverts
removed ones through paired downgrade scripts, and runs seed data with
run-once / run-always / run-if-changed policies.
"""

from dbreactor.core import (
    CancellationToken,
    ConfigurationError,
    DbReactorError,
    DiscoveryError,
    ExecutionError,
    ExecutionResult,
    JournalError,
    Migration,
    MigrationJournalEntry,
    ReactorResult,
    Script,
    ScriptExecutionOrder,
    Seed,
    SeedStrategy,
)
from dbreactor.engine import DbReactorEngine, ReactorConfiguration, create_engine

__version__ = "0.1.0"

__all__ = [
    "DbReactorEngine",
    "ReactorConfiguration",
    "create_engine",
    "CancellationToken",
    "Script",
    "Migration",
    "MigrationJournalEntry",
    "Seed",
    "SeedStrategy",
    "ScriptExecutionOrder",
    "ExecutionResult",
    "ReactorResult",
    "DbReactorError",
    "ConfigurationError",
    "DiscoveryError",
    "ExecutionError",
    "JournalError",
]
