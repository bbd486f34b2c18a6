"""
Downgrade Resolution.

Pairs upgrade scripts with downgrade scripts by naming convention:
- SAME_NAME: ``001_users.sql`` -> ``001_users.sql`` (in the downgrade location)
- SUFFIX:    ``001_users.sql`` -> ``001_users_downgrade.sql``
- PREFIX:    ``001_users.sql`` -> ``undo_001_users.sql``

A missing downgrade is never an error; the migration simply cannot be
reverted.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.exceptions import DiscoveryError
from dbreactor.core.interfaces import DowngradeResolver, ScriptProvider
from dbreactor.core.models import Script, strip_extension

logger = structlog.get_logger(__name__)


class DowngradeMatchingMode(str, Enum):
    """How a downgrade name is derived from an upgrade name."""

    SAME_NAME = "same_name"
    SUFFIX = "suffix"
    PREFIX = "prefix"


@dataclass(frozen=True)
class DowngradeMatchingOptions:
    """Configuration for downgrade name matching."""

    mode: DowngradeMatchingMode = DowngradeMatchingMode.SAME_NAME
    pattern: str | None = "_downgrade"
    upgrade_suffix: str = ".sql"
    downgrade_suffix: str = ".sql"


def downgrade_name_for(upgrade_name: str, options: DowngradeMatchingOptions) -> str:
    """
    Derive the downgrade base name (no extension) for an upgrade script.

    Args:
        upgrade_name: Upgrade script name, with or without extension
        options: Matching options

    Returns:
        Expected downgrade base name
    """
    base_name = strip_extension(upgrade_name)
    pattern = options.pattern or ""

    if options.mode == DowngradeMatchingMode.SUFFIX:
        return base_name + pattern
    if options.mode == DowngradeMatchingMode.PREFIX:
        return pattern + base_name
    return base_name


class FileSystemDowngradeResolver(DowngradeResolver):
    """
    Resolves downgrade scripts from a directory.

    Usage:
        ```python
        resolver = FileSystemDowngradeResolver(
            "scripts/downgrades",
            options=DowngradeMatchingOptions(mode=DowngradeMatchingMode.SUFFIX),
        )
        ```
    """

    def __init__(
        self,
        directory: str | Path,
        file_extension: str | None = None,
        options: DowngradeMatchingOptions | None = None,
    ) -> None:
        if not str(directory):
            raise ValueError("Downgrade directory cannot be empty")

        self.directory = Path(directory)
        self.options = options or DowngradeMatchingOptions()
        self.file_extension = file_extension or self.options.downgrade_suffix

    def path_for(self, upgrade_script: Script) -> Path:
        file_name = downgrade_name_for(upgrade_script.name, self.options) + self.file_extension
        return self.directory / file_name

    async def find_downgrade_for(
        self,
        upgrade_script: Script,
        cancellation: CancellationToken | None = None,
    ) -> Script | None:
        if not self.directory.is_dir():
            return None

        file_path = self.path_for(upgrade_script)
        if not file_path.is_file():
            return None

        try:
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(
                f"Failed to load downgrade script from file: {file_path}: {e}",
                script_name=upgrade_script.name,
            ) from e

        if not content.strip():
            logger.warning("Downgrade script is empty", path=str(file_path))
            return None

        return Script(name=upgrade_script.name, content=content, path=file_path.name)


class ScriptSetDowngradeResolver(DowngradeResolver):
    """
    Resolves downgrade scripts from another script provider.

    The provider is enumerated on first use and indexed by base name. The
    index lives until the next refresh(), i.e. for one migration build.
    """

    def __init__(
        self,
        provider: ScriptProvider,
        options: DowngradeMatchingOptions | None = None,
    ) -> None:
        self._provider = provider
        self.options = options or DowngradeMatchingOptions()
        self._index: dict[str, Script] | None = None

    async def _get_index(self, cancellation: CancellationToken | None) -> dict[str, Script]:
        if self._index is None:
            scripts = await self._provider.get_scripts(cancellation)
            index: dict[str, Script] = {}
            for script in scripts:
                base_name = strip_extension(script.name)
                if base_name in index:
                    logger.warning("Duplicate downgrade script name", name=base_name)
                    continue
                index[base_name] = script
            self._index = index
        return self._index

    def refresh(self) -> None:
        self._index = None

    async def find_downgrade_for(
        self,
        upgrade_script: Script,
        cancellation: CancellationToken | None = None,
    ) -> Script | None:
        index = await self._get_index(cancellation)
        return index.get(downgrade_name_for(upgrade_script.name, self.options))
