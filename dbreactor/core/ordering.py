"""
Migration ordering.

Execution order is a case-sensitive lexical sort on the derived migration
name (extension stripped, leading underscores ignored). Filtering and the
migration builder both sort through here.
"""

from collections.abc import Iterable

from dbreactor.core.models import Migration, ScriptExecutionOrder


def ordering_key(migration: Migration) -> str:
    """Name used for ordering: leading underscores are ignored."""
    return migration.name.lstrip("_")


def sort_migrations(
    migrations: Iterable[Migration],
    order: ScriptExecutionOrder = ScriptExecutionOrder.BY_NAME_ASCENDING,
) -> list[Migration]:
    """Stable case-sensitive lexical sort on the derived migration name."""
    return sorted(
        migrations,
        key=ordering_key,
        reverse=order == ScriptExecutionOrder.BY_NAME_DESCENDING,
    )
