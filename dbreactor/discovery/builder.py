"""
Migration Builder.

Combines upgrade scripts from one or more providers with their downgrade
scripts into Migration units, in execution order.
"""

from collections import Counter
from collections.abc import Iterable

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.code_scripts import CodeMigrationScript
from dbreactor.core.exceptions import DbReactorError, DiscoveryError
from dbreactor.core.interfaces import DowngradeResolver, MigrationBuilder, ScriptProvider
from dbreactor.core.models import Migration, Script, ScriptExecutionOrder
from dbreactor.core.ordering import sort_migrations

logger = structlog.get_logger(__name__)


class ScriptMigrationBuilder(MigrationBuilder):
    """
    Builds migrations from script providers and an optional downgrade resolver.

    Scripts from all providers are collected once into a working set and
    paired with their downgrades, then sorted by derived migration name
    (ordinal comparison, leading underscores ignored, descending when
    requested); that order is authoritative for the run. Duplicate
    migration names are reported as warnings only.

    Usage:
        ```python
        builder = ScriptMigrationBuilder(
            [FileSystemScriptProvider("scripts/upgrades")],
            downgrade_resolver=FileSystemDowngradeResolver("scripts/downgrades"),
        )
        migrations = await builder.build_migrations()
        ```
    """

    def __init__(
        self,
        providers: ScriptProvider | Iterable[ScriptProvider],
        downgrade_resolver: DowngradeResolver | None = None,
        order: ScriptExecutionOrder = ScriptExecutionOrder.BY_NAME_ASCENDING,
    ) -> None:
        if isinstance(providers, ScriptProvider):
            providers = [providers]
        self._providers = tuple(providers)
        self._downgrade_resolver = downgrade_resolver
        self.order = order

    async def _collect_scripts(self, token: CancellationToken) -> list[Script]:
        scripts: list[Script] = []
        for provider in self._providers:
            try:
                scripts.extend(await provider.get_scripts(token))
            except (DbReactorError, OperationCancelled):
                raise
            except Exception as e:
                raise DiscoveryError(f"Failed to discover scripts: {e}") from e
        return scripts

    async def build_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Migration]:
        token = ensure_token(cancellation)
        scripts = await self._collect_scripts(token)

        if self._downgrade_resolver is not None:
            self._downgrade_resolver.refresh()

        migrations: list[Migration] = []
        for script in scripts:
            downgrade = None
            # Code migrations generate their own downgrade
            if self._downgrade_resolver is not None and not isinstance(script, CodeMigrationScript):
                try:
                    downgrade = await self._downgrade_resolver.find_downgrade_for(script, token)
                except (DbReactorError, OperationCancelled):
                    raise
                except Exception as e:
                    raise DiscoveryError(
                        f"Failed to resolve downgrade: {e}",
                        script_name=script.name,
                    ) from e
            migrations.append(Migration.from_script(script, downgrade))

        duplicates = [name for name, n in Counter(m.name for m in migrations).items() if n > 1]
        if duplicates:
            logger.warning("Duplicate migration names discovered", names=duplicates)

        logger.debug(
            "Migrations built",
            count=len(migrations),
            with_downgrade=sum(1 for m in migrations if m.has_downgrade),
        )
        return sort_migrations(migrations, self.order)
