"""
Exception hierarchy for DbReactor.

All errors raised by the orchestrator derive from DbReactorError and carry
the operation that failed plus, where known, the script involved.
"""


class DbReactorError(Exception):
    """Base exception for all DbReactor errors."""

    operation: str | None = None

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        script_name: str | None = None,
    ):
        self.message = message
        if operation is not None:
            self.operation = operation
        self.script_name = script_name
        super().__init__(message)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "operation": self.operation,
            "script_name": self.script_name,
        }


class ConfigurationError(DbReactorError):
    """Raised when the run configuration is incomplete or inconsistent."""

    operation = "configuration"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class DiscoveryError(DbReactorError):
    """Raised when scripts cannot be enumerated or paired."""

    operation = "script_discovery"


class ExecutionError(DbReactorError):
    """Raised when executing a migration script fails."""

    operation = "migration_execution"

    def __init__(self, message: str, script_name: str | None = None):
        super().__init__(message, script_name=script_name)


class JournalError(DbReactorError):
    """Raised by journal implementations when reading or writing fails."""

    operation = "journal"


class DowngradeUnsupportedError(ExecutionError):
    """
    Attached to the failed result of downgrading a migration that has no
    downgrade content. Reported, never raised by the engine.
    """

    operation = "migration_downgrade"


class ProvisioningError(DbReactorError):
    """Raised when the target database cannot be checked or created."""

    operation = "database_provisioning"
