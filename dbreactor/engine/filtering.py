"""
Migration Filtering.

Splits the current migration set into pending and applied against the
journal, and finds journal entries whose source migration no longer exists.
"""

from collections.abc import Iterable

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.exceptions import DbReactorError, DiscoveryError
from dbreactor.core.interfaces import MigrationBuilder, MigrationJournal, ScriptProvider
from dbreactor.core.models import Migration, MigrationJournalEntry, ScriptExecutionOrder
from dbreactor.core.ordering import sort_migrations

logger = structlog.get_logger(__name__)


class MigrationFilteringService:
    """
    Pending/applied views of the migration set.

    With a builder, its output order is used as is. Without one, scripts
    from the providers become migrations without downgrade and are sorted
    by execution order.
    """

    def __init__(
        self,
        journal: MigrationJournal,
        providers: Iterable[ScriptProvider] = (),
        builder: MigrationBuilder | None = None,
        order: ScriptExecutionOrder = ScriptExecutionOrder.BY_NAME_ASCENDING,
    ) -> None:
        self._journal = journal
        self._providers = tuple(providers)
        self._builder = builder
        self._order = order

    async def get_all_migrations(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Migration]:
        token = ensure_token(cancellation)

        if self._builder is not None:
            return list(await self._builder.build_migrations(token))

        migrations: list[Migration] = []
        for provider in self._providers:
            try:
                scripts = await provider.get_scripts(token)
            except (DbReactorError, OperationCancelled):
                raise
            except Exception as e:
                raise DiscoveryError(f"Failed to discover scripts: {e}") from e
            migrations.extend(Migration.from_script(script) for script in scripts)

        return sort_migrations(migrations, self._order)

    async def get_pending_upgrades(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Migration]:
        token = ensure_token(cancellation)
        pending = []
        for migration in await self.get_all_migrations(token):
            if not await self._journal.has_been_executed(migration, token):
                pending.append(migration)

        logger.debug("Pending upgrades computed", count=len(pending))
        return pending

    async def get_applied_upgrades(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[Migration]:
        token = ensure_token(cancellation)
        applied = []
        for migration in await self.get_all_migrations(token):
            if await self._journal.has_been_executed(migration, token):
                applied.append(migration)
        return applied

    async def has_pending_upgrades(self, cancellation: CancellationToken | None = None) -> bool:
        """True as soon as one migration is found that is not journaled."""
        token = ensure_token(cancellation)
        for migration in await self.get_all_migrations(token):
            if not await self._journal.has_been_executed(migration, token):
                return True
        return False

    async def get_entries_to_downgrade(
        self,
        cancellation: CancellationToken | None = None,
    ) -> list[MigrationJournalEntry]:
        """
        Journal entries whose upgrade hash matches no current migration.

        Returned newest first, i.e. in reverse journal order.
        """
        token = ensure_token(cancellation)
        current = {m.upgrade_script.hash for m in await self.get_all_migrations(token)}
        executed = await self._journal.get_executed_migrations(token)

        orphaned = [e for e in executed if e.upgrade_script_hash not in current]
        orphaned.reverse()

        if orphaned:
            logger.info(
                "Removed migrations found in journal",
                count=len(orphaned),
                migrations=[e.migration_name for e in orphaned],
            )
        return orphaned
