"""
Core Module.

Store-independent building blocks of the orchestrator:
- Script, Migration and Seed data model
- Content hashing and migration ordering
- Variable substitution
- Cooperative cancellation
- Error hierarchy
- Collaborator contracts (journal, executor, providers, provisioner)
- Code scripts generating content at run time
"""

from dbreactor.core.cancellation import CancellationToken, OperationCancelled
from dbreactor.core.code_scripts import CodeMigrationScript, CodeScript, CodeScriptContext
from dbreactor.core.exceptions import (
    ConfigurationError,
    DbReactorError,
    DiscoveryError,
    DowngradeUnsupportedError,
    ExecutionError,
    JournalError,
    ProvisioningError,
)
from dbreactor.core.hashing import generate_hash
from dbreactor.core.interfaces import (
    ConnectionManager,
    DatabaseProvisioner,
    DowngradeResolver,
    MigrationBuilder,
    MigrationJournal,
    ScriptExecutor,
    ScriptProvider,
    SeedJournal,
)
from dbreactor.core.models import (
    ExecutionResult,
    Migration,
    MigrationJournalEntry,
    ReactorResult,
    Script,
    ScriptExecutionOrder,
    Seed,
    SeedJournalEntry,
    SeedStrategy,
    strip_extension,
)
from dbreactor.core.ordering import ordering_key, sort_migrations
from dbreactor.core.variables import (
    get_unresolved_variables,
    get_variable_names,
    substitute_variables,
)

__all__ = [
    # Models
    "Script",
    "Migration",
    "MigrationJournalEntry",
    "Seed",
    "SeedJournalEntry",
    "SeedStrategy",
    "ScriptExecutionOrder",
    "ExecutionResult",
    "ReactorResult",
    "strip_extension",
    "ordering_key",
    "sort_migrations",
    # Hashing & variables
    "generate_hash",
    "substitute_variables",
    "get_variable_names",
    "get_unresolved_variables",
    # Cancellation
    "CancellationToken",
    "OperationCancelled",
    # Errors
    "DbReactorError",
    "ConfigurationError",
    "DiscoveryError",
    "ExecutionError",
    "DowngradeUnsupportedError",
    "JournalError",
    "ProvisioningError",
    # Contracts
    "ScriptProvider",
    "DowngradeResolver",
    "MigrationBuilder",
    "ConnectionManager",
    "DatabaseProvisioner",
    "ScriptExecutor",
    "MigrationJournal",
    "SeedJournal",
    # Code scripts
    "CodeScript",
    "CodeScriptContext",
    "CodeMigrationScript",
]
