"""
Reactor Configuration.

Immutable run configuration handed to the engine. Built once, either
directly or from environment settings, and validated before any side
effect.

Usage:
    ```python
    config = ReactorConfiguration(
        connection_manager=Neo4jConnectionManager(),
        script_executor=Neo4jScriptExecutor(),
        migration_journal=Neo4jMigrationJournal(),
        script_providers=[FileSystemScriptProvider("scripts/upgrades")],
        downgrade_resolver=FileSystemDowngradeResolver("scripts/downgrades"),
        allow_downgrades=True,
        variables={"Environment": "staging"},
    )
    engine = DbReactorEngine(config)
    ```
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from dbreactor.config.settings import DbReactorSettings
from dbreactor.core.exceptions import ConfigurationError
from dbreactor.core.interfaces import (
    ConnectionManager,
    DatabaseProvisioner,
    DowngradeResolver,
    MigrationBuilder,
    MigrationJournal,
    ScriptExecutor,
    ScriptProvider,
    SeedJournal,
)
from dbreactor.core.models import ScriptExecutionOrder, SeedStrategy
from dbreactor.discovery.builder import ScriptMigrationBuilder
from dbreactor.discovery.code import CodeScriptProvider
from dbreactor.discovery.downgrade import (
    DowngradeMatchingOptions,
    FileSystemDowngradeResolver,
)
from dbreactor.discovery.providers import FileSystemScriptProvider
from dbreactor.seeding.resolvers import SeedStrategyResolver, default_resolvers

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReactorConfiguration:
    """
    Everything a run needs.

    Collections are stored as tuples and ``variables`` as a read-only
    mapping. When a downgrade resolver is given without a builder, a
    ScriptMigrationBuilder over the script providers is created so that
    downgrades are paired at discovery time.
    """

    connection_manager: ConnectionManager | None = None
    script_executor: ScriptExecutor | None = None
    migration_journal: MigrationJournal | None = None
    script_providers: tuple[ScriptProvider, ...] = ()
    migration_builder: MigrationBuilder | None = None
    downgrade_resolver: DowngradeResolver | None = None
    execution_order: ScriptExecutionOrder = ScriptExecutionOrder.BY_NAME_ASCENDING
    allow_downgrades: bool = False

    # Provisioning
    database_provisioner: DatabaseProvisioner | None = None
    create_database_if_not_exists: bool = False
    database_creation_template: str | None = None

    # Variables
    enable_variables: bool = True
    variables: Mapping[str, str] = field(default_factory=dict)

    # Seeding
    enable_seeding: bool = False
    seed_journal: SeedJournal | None = None
    seed_providers: tuple[ScriptProvider, ...] = ()
    seed_resolvers: tuple[SeedStrategyResolver, ...] | None = None
    global_seed_strategy: SeedStrategy | None = None
    fallback_seed_strategy: SeedStrategy = SeedStrategy.RUN_ONCE

    def __post_init__(self) -> None:
        object.__setattr__(self, "script_providers", tuple(self.script_providers))
        object.__setattr__(self, "seed_providers", tuple(self.seed_providers))
        if self.seed_resolvers is not None:
            object.__setattr__(self, "seed_resolvers", tuple(self.seed_resolvers))
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

        if (
            self.migration_builder is None
            and self.downgrade_resolver is not None
            and self.script_providers
        ):
            object.__setattr__(
                self,
                "migration_builder",
                ScriptMigrationBuilder(
                    self.script_providers,
                    self.downgrade_resolver,
                    self.execution_order,
                ),
            )

    @property
    def effective_variables(self) -> Mapping[str, str] | None:
        """Variables to substitute, or None when substitution is off."""
        if self.enable_variables and self.variables:
            return self.variables
        return None

    @property
    def effective_seed_resolvers(self) -> tuple[SeedStrategyResolver, ...]:
        if self.seed_resolvers is None:
            return tuple(default_resolvers())
        return self.seed_resolvers

    def validate_configuration(self) -> list[str]:
        """Return every configuration problem found (empty when valid)."""
        errors: list[str] = []

        if not self.script_providers and self.migration_builder is None:
            errors.append("At least one script provider or a migration builder must be configured.")
        if self.connection_manager is None:
            errors.append("A connection manager must be configured.")
        if self.migration_journal is None:
            errors.append("A migration journal must be configured.")
        if self.script_executor is None:
            errors.append("A script executor must be configured.")

        if (
            self.allow_downgrades
            and self.downgrade_resolver is None
            and self.migration_builder is None
        ):
            errors.append("Downgrades are enabled but no downgrade resolver or migration builder is configured.")

        if self.create_database_if_not_exists and self.database_provisioner is None:
            errors.append("Database creation is enabled but no database provisioner is configured.")

        if self.enable_seeding:
            if self.seed_journal is None:
                errors.append("Seeding is enabled but no seed journal is configured.")
            if not self.seed_providers:
                errors.append("Seeding is enabled but no seed script provider is configured.")

        return errors

    def validate_and_raise(self) -> None:
        errors = self.validate_configuration()
        if errors:
            logger.error("Invalid reactor configuration", errors=errors)
            raise ConfigurationError(
                "Invalid configuration: " + " ".join(errors),
                errors=errors,
            )

    @classmethod
    def from_settings(
        cls,
        settings: DbReactorSettings,
        *,
        connection_manager: ConnectionManager,
        script_executor: ScriptExecutor,
        migration_journal: MigrationJournal,
        seed_journal: SeedJournal | None = None,
        database_provisioner: DatabaseProvisioner | None = None,
        extra_providers: Iterable[ScriptProvider] = (),
    ) -> "ReactorConfiguration":
        """
        Build a configuration from environment settings.

        Script, code script, downgrade and seed directories become
        providers and resolvers; store collaborators are passed in.
        """
        providers: list[ScriptProvider] = []
        if settings.scripts_directory is not None:
            providers.append(
                FileSystemScriptProvider(
                    settings.scripts_directory,
                    file_extension=settings.script_extension,
                    recursive=settings.recursive_discovery,
                )
            )
        if settings.code_scripts_directory is not None:
            providers.append(CodeScriptProvider.from_directory(settings.code_scripts_directory))
        providers.extend(extra_providers)

        resolver = None
        if settings.downgrades_directory is not None:
            resolver = FileSystemDowngradeResolver(
                settings.downgrades_directory,
                file_extension=settings.script_extension,
                options=DowngradeMatchingOptions(
                    mode=settings.downgrade_mode,
                    pattern=settings.downgrade_pattern,
                    upgrade_suffix=settings.script_extension,
                    downgrade_suffix=settings.script_extension,
                ),
            )

        seed_providers: list[ScriptProvider] = []
        if settings.seeds_directory is not None:
            seed_providers.append(
                FileSystemScriptProvider(
                    settings.seeds_directory,
                    file_extension=settings.script_extension,
                    recursive=True,
                )
            )

        return cls(
            connection_manager=connection_manager,
            script_executor=script_executor,
            migration_journal=migration_journal,
            script_providers=tuple(providers),
            downgrade_resolver=resolver,
            execution_order=settings.execution_order,
            allow_downgrades=settings.allow_downgrades,
            database_provisioner=database_provisioner,
            create_database_if_not_exists=settings.create_database_if_not_exists,
            database_creation_template=settings.database_creation_template,
            enable_variables=settings.enable_variables,
            variables=settings.variables,
            enable_seeding=settings.enable_seeding,
            seed_journal=seed_journal,
            seed_providers=tuple(seed_providers),
            global_seed_strategy=settings.global_seed_strategy,
            fallback_seed_strategy=settings.fallback_seed_strategy,
        )
