"""
Script Providers.

Enumerate scripts for a run:
- FileSystemScriptProvider: files under a directory
- StaticScriptProvider: a fixed in-memory collection
"""

import asyncio
from collections.abc import Iterable
from pathlib import Path

import structlog

from dbreactor.core.cancellation import CancellationToken, ensure_token
from dbreactor.core.exceptions import DiscoveryError
from dbreactor.core.interfaces import ScriptProvider
from dbreactor.core.models import Script

logger = structlog.get_logger(__name__)


class FileSystemScriptProvider(ScriptProvider):
    """
    Discovers scripts from a directory.

    Script names are file names (extension included); the logical path is
    the path relative to the directory, using forward slashes, so that seed
    folder conventions such as ``run-once/S001.sql`` survive.

    Usage:
        ```python
        provider = FileSystemScriptProvider("scripts/upgrades", recursive=True)
        scripts = await provider.get_scripts()
        ```
    """

    def __init__(
        self,
        directory: str | Path,
        file_extension: str = ".sql",
        recursive: bool = False,
    ) -> None:
        if not str(directory):
            raise ValueError("Directory path cannot be empty")

        self.directory = Path(directory)
        self.file_extension = file_extension or ".sql"
        self.recursive = recursive

    def _list_files(self) -> list[Path]:
        pattern = f"*{self.file_extension}"
        found = self.directory.rglob(pattern) if self.recursive else self.directory.glob(pattern)
        files = [p for p in found if p.is_file()]
        return sorted(files, key=lambda p: p.relative_to(self.directory).as_posix().lower())

    async def get_scripts(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Script]:
        token = ensure_token(cancellation)

        if not self.directory.is_dir():
            logger.debug("Script directory not found", directory=str(self.directory))
            return []

        scripts: list[Script] = []
        for file_path in self._list_files():
            token.raise_if_cancelled()
            scripts.append(await self._load(file_path))

        logger.debug(
            "Scripts discovered",
            directory=str(self.directory),
            count=len(scripts),
        )
        return scripts

    async def _load(self, file_path: Path) -> Script:
        try:
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
            return Script(
                name=file_path.name,
                content=content,
                path=file_path.relative_to(self.directory).as_posix(),
            )
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise DiscoveryError(
                f"Failed to load script from file: {file_path}: {e}",
                script_name=file_path.name,
            ) from e


class StaticScriptProvider(ScriptProvider):
    """Serves a fixed collection of scripts."""

    def __init__(self, scripts: Iterable[Script] = ()) -> None:
        self._scripts = list(scripts)

    def add(self, script: Script) -> None:
        self._scripts.append(script)

    def remove(self, name: str) -> None:
        self._scripts = [s for s in self._scripts if s.name != name]

    async def get_scripts(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Script]:
        return list(self._scripts)
