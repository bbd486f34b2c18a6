"""
Code Script Provider.

Serves CodeScript migrations, either from instances handed in directly or
from ``*.py`` files in a directory. A migration file either defines one
concrete CodeScript subclass or module-level functions::

    async def upgrade(context: CodeScriptContext) -> str: ...
    async def downgrade(context: CodeScriptContext) -> str | None: ...  # optional

Files starting with ``_`` are skipped. A file-loaded code script is named
after its file, so ``003_AddPersonIds.py`` orders with the other scripts
as migration ``003_AddPersonIds``.
"""

import asyncio
import importlib.util
import inspect
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from types import ModuleType

import structlog

from dbreactor.core.cancellation import CancellationToken, ensure_token
from dbreactor.core.code_scripts import CodeMigrationScript, CodeScript, CodeScriptContext
from dbreactor.core.exceptions import DiscoveryError
from dbreactor.core.interfaces import ScriptProvider
from dbreactor.core.models import Script

logger = structlog.get_logger(__name__)

ScriptGenerator = Callable[[CodeScriptContext], Awaitable[str | None]]


class FunctionCodeScript(CodeScript):
    """CodeScript over plain async functions."""

    def __init__(self, name: str, upgrade: ScriptGenerator, downgrade: ScriptGenerator | None = None) -> None:
        self.name = name
        self._upgrade = upgrade
        self._downgrade = downgrade
        self.supports_downgrade = downgrade is not None

    async def get_upgrade_script(self, context: CodeScriptContext) -> str:
        return await self._upgrade(context) or ""

    async def get_downgrade_script(self, context: CodeScriptContext) -> str | None:
        if self._downgrade is None:
            return None
        return await self._downgrade(context)


def _code_script_from_module(module: ModuleType, name: str) -> CodeScript:
    classes = [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and issubclass(obj, CodeScript)
        and not inspect.isabstract(obj)
        and obj.__module__ == module.__name__
    ]
    if len(classes) > 1:
        raise DiscoveryError(
            f"Migration file defines more than one code script: {[c.__name__ for c in classes]}",
            script_name=name,
        )

    if classes:
        try:
            instance = classes[0]()
        except TypeError as e:
            raise DiscoveryError(
                f"Code script {classes[0].__name__} needs a no-argument constructor: {e}",
                script_name=name,
            ) from e
        if not instance.name:
            instance.name = name
        return instance

    upgrade = getattr(module, "upgrade", None)
    if upgrade is None or not inspect.iscoroutinefunction(upgrade):
        raise DiscoveryError(
            "Migration file has no CodeScript subclass and no async upgrade(context) function",
            script_name=name,
        )
    downgrade = getattr(module, "downgrade", None)
    if downgrade is not None and not inspect.iscoroutinefunction(downgrade):
        raise DiscoveryError("downgrade(context) must be an async function", script_name=name)
    return FunctionCodeScript(name, upgrade, downgrade)


def load_code_script(file_path: Path) -> CodeScript:
    """Import a migration file and return its code script."""
    module_name = f"dbreactor_code_script_{file_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise DiscoveryError(f"Cannot import migration file: {file_path}", script_name=file_path.name)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise DiscoveryError(
            f"Failed to load code script from file: {file_path}: {e}",
            script_name=file_path.name,
        ) from e

    return _code_script_from_module(module, file_path.name)


class CodeScriptProvider(ScriptProvider):
    """
    Provides code migrations.

    Usage:
        ```python
        provider = CodeScriptProvider([AddPersonIds()])
        provider = CodeScriptProvider.from_directory("scripts/code")
        ```
    """

    def __init__(self, code_scripts: Iterable[CodeScript] = (), directory: str | Path | None = None) -> None:
        self._code_scripts = list(code_scripts)
        self.directory = Path(directory) if directory is not None else None

    @classmethod
    def from_directory(cls, directory: str | Path) -> "CodeScriptProvider":
        return cls(directory=directory)

    def _list_files(self) -> list[Path]:
        assert self.directory is not None
        return sorted(
            (p for p in self.directory.glob("*.py") if p.is_file() and not p.name.startswith("_")),
            key=lambda p: p.name,
        )

    async def get_scripts(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Script]:
        token = ensure_token(cancellation)
        scripts: list[Script] = [CodeMigrationScript.wrap(c) for c in self._code_scripts]

        if self.directory is not None and self.directory.is_dir():
            for file_path in self._list_files():
                token.raise_if_cancelled()
                code_script = await asyncio.to_thread(load_code_script, file_path)
                scripts.append(CodeMigrationScript.wrap(code_script, path=file_path.name))

        logger.debug("Code scripts discovered", count=len(scripts))
        return scripts
