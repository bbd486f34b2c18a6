"""
Code Scripts.

Migrations whose upgrade and downgrade content is generated at run time by
Python code, with access to the store connection and the run variables.

A code script is identified by its name, not by generated content: the
journal hash of a code migration is the hash of that name, so regenerating
different content never makes it pending again.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from dbreactor.core.hashing import generate_hash
from dbreactor.core.interfaces import ConnectionManager
from dbreactor.core.models import Script

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class CodeScriptContext:
    """What a code script sees while generating content."""

    connection_manager: ConnectionManager
    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables or {})))

    def has_variable(self, name: str) -> bool:
        return name in self.variables

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.variables.get(name, default)

    def require(self, name: str) -> str:
        """Value of a variable that must be set and non-empty."""
        value = self.variables.get(name)
        if value is None or not value.strip():
            raise KeyError(f"Required variable '{name}' is not set")
        return value

    def get_int(self, name: str, default: int = 0) -> int:
        try:
            return int(self.variables[name])
        except (KeyError, TypeError, ValueError):
            return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = (self.variables.get(name) or "").strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        return default


class CodeScript(ABC):
    """
    A migration written in Python.

    Subclasses generate the Cypher to run. Set ``supports_downgrade`` and
    override ``get_downgrade_script`` to make the migration revertible;
    the generated downgrade is stored in the journal when the upgrade runs.

    Usage:
        ```python
        class AddPersonIds(CodeScript):
            name = "003_AddPersonIds"
            supports_downgrade = True

            async def get_upgrade_script(self, context: CodeScriptContext) -> str:
                label = context.get("PersonLabel", "Person")
                return f"MATCH (p:{label}) WHERE p.id IS NULL SET p.id = randomUUID()"

            async def get_downgrade_script(self, context: CodeScriptContext) -> str | None:
                return "MATCH (p:Person) REMOVE p.id"
        ```
    """

    name: str | None = None
    supports_downgrade: bool = False

    @property
    def script_name(self) -> str:
        """Explicit ``name``, else the qualified class name."""
        if self.name:
            return self.name
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @abstractmethod
    async def get_upgrade_script(self, context: CodeScriptContext) -> str:
        """Generate the upgrade content."""

    async def get_downgrade_script(self, context: CodeScriptContext) -> str | None:
        """Generate the downgrade content, or None when not supported."""
        return None


@dataclass(frozen=True)
class CodeMigrationScript(Script):
    """Script wrapper around a CodeScript; content is a placeholder until run."""

    code_script: CodeScript | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.code_script is None:
            raise ValueError(f"Code migration '{self.name}' has no code script")
        super().__post_init__()
        object.__setattr__(self, "hash", generate_hash(self.name))

    @classmethod
    def wrap(cls, code_script: CodeScript, path: str | None = None) -> "CodeMigrationScript":
        name = code_script.script_name
        return cls(
            name=name,
            content=f"-- Code script: {name}",
            path=path,
            code_script=code_script,
        )
