"""
Engine Module.

Migration run orchestration:
- Pending/applied filtering against the journal
- Single-script execution with journal updates
- Fail-fast upgrade and downgrade batches
- Run preview
- Immutable run configuration and the DbReactorEngine facade
"""

from dbreactor.core.ordering import ordering_key, sort_migrations
from dbreactor.engine.configuration import ReactorConfiguration
from dbreactor.engine.execution import ScriptExecutionService
from dbreactor.engine.filtering import MigrationFilteringService
from dbreactor.engine.orchestrator import MigrationOrchestrator
from dbreactor.engine.preview import RunPreviewItem, RunPreviewResult, RunPreviewService
from dbreactor.engine.reactor import DbReactorEngine, create_engine

__all__ = [
    "ReactorConfiguration",
    "DbReactorEngine",
    "create_engine",
    "MigrationFilteringService",
    "ordering_key",
    "sort_migrations",
    "ScriptExecutionService",
    "MigrationOrchestrator",
    "RunPreviewItem",
    "RunPreviewResult",
    "RunPreviewService",
]
