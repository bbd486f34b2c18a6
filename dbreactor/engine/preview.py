"""
Run Preview.

Dry analysis of what a run would do. Nothing is executed and the journal
is never written.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.interfaces import DatabaseProvisioner
from dbreactor.core.models import Migration
from dbreactor.engine.filtering import MigrationFilteringService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RunPreviewItem:
    """One migration (upgrade) or journal entry (downgrade) in a preview."""

    migration_name: str
    already_executed: bool
    is_upgrade: bool = True
    migration: Migration | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "migration_name": self.migration_name,
            "already_executed": self.already_executed,
            "is_upgrade": self.is_upgrade,
        }


@dataclass
class RunPreviewResult:
    """Aggregate preview of a run."""

    items: list[RunPreviewItem] = field(default_factory=list)
    database_exists: bool = True

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def skipped(self) -> int:
        return sum(1 for i in self.items if i.already_executed)

    @property
    def pending(self) -> int:
        return self.total - self.skipped

    @property
    def pending_upgrades(self) -> int:
        return sum(1 for i in self.items if i.is_upgrade and not i.already_executed)

    @property
    def pending_downgrades(self) -> int:
        return sum(1 for i in self.items if not i.is_upgrade)

    @property
    def summary(self) -> str:
        return (
            f"Total: {self.total}, Pending: {self.pending} "
            f"(Upgrades: {self.pending_upgrades}, Downgrades: {self.pending_downgrades}), "
            f"Already executed: {self.skipped}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "skipped": self.skipped,
            "pending": self.pending,
            "pending_upgrades": self.pending_upgrades,
            "pending_downgrades": self.pending_downgrades,
            "database_exists": self.database_exists,
            "summary": self.summary,
            "items": [i.to_dict() for i in self.items],
        }


class RunPreviewService:
    """
    Builds a RunPreviewResult from the filtering service.

    If the journal cannot be read, every migration is reported as pending
    and no downgrades are listed. With a provisioner, a missing database
    means every migration is pending when it would be created, and an
    empty preview when it would not.
    """

    def __init__(
        self,
        filtering: MigrationFilteringService,
        provisioner: DatabaseProvisioner | None = None,
        create_database: bool = False,
    ) -> None:
        self._filtering = filtering
        self._provisioner = provisioner
        self._create_database = create_database

    async def run_preview(self, cancellation: CancellationToken | None = None) -> RunPreviewResult:
        token = ensure_token(cancellation)
        preview = RunPreviewResult()

        migrations = await self._filtering.get_all_migrations(token)

        if self._provisioner is not None and not await self._provisioner.database_exists(token):
            preview.database_exists = False
            if not self._create_database:
                logger.error("Database does not exist and database creation is disabled")
                return preview

            logger.info("Database does not exist and would be created, every migration would run")
            preview.items.extend(
                RunPreviewItem(migration_name=m.name, already_executed=False, migration=m) for m in migrations
            )
            return preview

        try:
            applied = {m.upgrade_script.hash for m in await self._filtering.get_applied_upgrades(token)}
            entries = await self._filtering.get_entries_to_downgrade(token)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.warning(
                "Could not access migration journal, assuming nothing has been executed",
                error=str(e),
            )
            applied = set()
            entries = []

        for migration in migrations:
            preview.items.append(
                RunPreviewItem(
                    migration_name=migration.name,
                    already_executed=migration.upgrade_script.hash in applied,
                    migration=migration,
                )
            )

        for entry in entries:
            preview.items.append(
                RunPreviewItem(
                    migration_name=entry.migration_name,
                    already_executed=False,
                    is_upgrade=False,
                )
            )

        logger.info("Run preview completed", summary=preview.summary)
        return preview
