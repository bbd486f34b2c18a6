"""
Core data model.

Scripts, migrations, seeds, journal entries and execution results shared by
every part of the orchestrator. Everything here is plain data; behaviour
lives in the discovery, engine and seeding packages.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from dbreactor.core.hashing import generate_hash

# Extensions stripped when deriving a migration name from a script name
SCRIPT_EXTENSIONS = (".sql", ".cypher", ".cql", ".py")


class ScriptExecutionOrder(str, Enum):
    """Order in which pending migrations are applied."""

    BY_NAME_ASCENDING = "by_name_ascending"
    BY_NAME_DESCENDING = "by_name_descending"


class SeedStrategy(str, Enum):
    """Re-run policy of a seed script."""

    RUN_ONCE = "run-once"
    RUN_ALWAYS = "run-always"
    RUN_IF_CHANGED = "run-if-changed"


def strip_extension(name: str) -> str:
    """
    Remove one known script extension from a name.

    Matching is case-insensitive; unknown extensions are kept.
    """
    lowered = name.lower()
    for ext in SCRIPT_EXTENSIONS:
        if lowered.endswith(ext):
            return name[: -len(ext)]
    return name


@dataclass(frozen=True)
class Script:
    """
    Immutable unit of change content.

    The hash is computed once from the content and is the only identity the
    journal knows about: two scripts with the same content are the same
    script, whatever their names.
    """

    name: str
    content: str
    path: str | None = None
    hash: str = field(init=False)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Script name cannot be empty")
        if not self.content or not self.content.strip():
            raise ValueError(f"Script '{self.name}' has no content")
        object.__setattr__(self, "hash", generate_hash(self.content))

    @property
    def logical_path(self) -> str:
        """Path used for convention-based resolution (falls back to name)."""
        return self.path or self.name

    def with_content(self, content: str) -> "Script":
        """Copy of this script carrying different runtime content."""
        return Script(name=self.name, content=content, path=self.path)


@dataclass(frozen=True)
class Migration:
    """An upgrade script paired with its optional downgrade."""

    name: str
    upgrade_script: Script
    downgrade_script: Script | None = None

    @property
    def has_downgrade(self) -> bool:
        return self.downgrade_script is not None

    @property
    def downgrade_content(self) -> str | None:
        return self.downgrade_script.content if self.downgrade_script else None

    @classmethod
    def from_script(
        cls,
        script: Script,
        downgrade_script: Script | None = None,
    ) -> "Migration":
        return cls(
            name=strip_extension(script.name),
            upgrade_script=script,
            downgrade_script=downgrade_script,
        )


@dataclass(frozen=True)
class MigrationJournalEntry:
    """Durable record of one applied migration."""

    id: int
    upgrade_script_hash: str
    migration_name: str
    downgrade_script: str | None
    applied_at: datetime
    execution_duration: timedelta = timedelta(0)

    @property
    def supports_downgrade(self) -> bool:
        return bool(self.downgrade_script and self.downgrade_script.strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "upgrade_script_hash": self.upgrade_script_hash,
            "migration_name": self.migration_name,
            "supports_downgrade": self.supports_downgrade,
            "applied_at": self.applied_at.isoformat(),
            "execution_duration_ms": self.execution_duration.total_seconds() * 1000,
        }


@dataclass(frozen=True)
class Seed:
    """A seed script with its resolved re-run strategy."""

    name: str
    script: Script
    strategy: SeedStrategy

    @property
    def hash(self) -> str:
        return self.script.hash


@dataclass(frozen=True)
class SeedJournalEntry:
    """Record of one seed execution."""

    seed_name: str
    hash: str
    strategy: SeedStrategy
    executed_at: datetime
    execution_duration: timedelta = timedelta(0)


@dataclass
class ExecutionResult:
    """Outcome of executing a single script."""

    successful: bool
    script: Script | None = None
    error: BaseException | None = None
    error_message: str | None = None
    execution_duration: timedelta = timedelta(0)

    @classmethod
    def success(cls, script: Script | None = None) -> "ExecutionResult":
        return cls(successful=True, script=script)

    @classmethod
    def failure(
        cls,
        message: str,
        script: Script | None = None,
        error: BaseException | None = None,
    ) -> "ExecutionResult":
        return cls(successful=False, script=script, error=error, error_message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "script": self.script.name if self.script else None,
            "successful": self.successful,
            "error_message": self.error_message,
            "execution_duration_ms": self.execution_duration.total_seconds() * 1000,
        }


@dataclass(frozen=True)
class ReactorResult:
    """Aggregate result of a batch of script executions."""

    successful: bool
    scripts: tuple[ExecutionResult, ...] = ()
    error: BaseException | None = None
    error_message: str | None = None
    cancelled: bool = False

    @property
    def executed_count(self) -> int:
        return sum(1 for s in self.scripts if s.successful)

    @property
    def failed_script(self) -> ExecutionResult | None:
        return next((s for s in self.scripts if not s.successful), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "successful": self.successful,
            "cancelled": self.cancelled,
            "error_message": self.error_message,
            "executed_count": self.executed_count,
            "scripts": [s.to_dict() for s in self.scripts],
        }
