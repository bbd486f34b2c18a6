"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading. Nested sections use
their own prefixes (``NEO4J_URI``, ``DBREACTOR_SCRIPTS_DIRECTORY`` ...).
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbreactor.core.models import ScriptExecutionOrder, SeedStrategy
from dbreactor.discovery.downgrade import DowngradeMatchingMode


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


def normalize_strategy(v: str | None) -> str | None:
    """Accept ``RUN_ONCE``, ``run_once`` and ``run-once`` alike."""
    if isinstance(v, str):
        return v.strip().lower().replace("_", "-") or None
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j database connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=50, description="Connection pool size")
    connection_timeout_s: float = Field(default=30.0, description="Connection timeout in seconds")

    # Journal storage
    journal_label: str = Field(default="MigrationJournal", description="Node label of migration journal entries")
    seed_journal_label: str = Field(default="SeedJournal", description="Node label of seed journal entries")


class DbReactorSettings(BaseSettings):
    """Run settings aggregating migration, seeding, logging and store sub-settings."""

    model_config = SettingsConfigDict(
        env_prefix="DBREACTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for production, console for development)"
    )

    # Discovery
    scripts_directory: Path | None = Field(default=None, description="Directory of upgrade scripts")
    downgrades_directory: Path | None = Field(default=None, description="Directory of downgrade scripts")
    code_scripts_directory: Path | None = Field(default=None, description="Directory of Python code migrations")
    seeds_directory: Path | None = Field(default=None, description="Root directory of seed scripts")
    script_extension: str = Field(default=".sql", description="Extension of script files")
    recursive_discovery: bool = Field(default=False, description="Search script directories recursively")
    execution_order: Annotated[
        ScriptExecutionOrder,
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default=ScriptExecutionOrder.BY_NAME_ASCENDING, description="Upgrade execution order")

    # Downgrades
    allow_downgrades: bool = Field(default=False, description="Revert migrations whose scripts were removed")
    downgrade_mode: Annotated[
        DowngradeMatchingMode,
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default=DowngradeMatchingMode.SAME_NAME, description="Downgrade file matching mode")
    downgrade_pattern: str = Field(default="_downgrade", description="Suffix or prefix for downgrade names")

    # Provisioning
    create_database_if_not_exists: bool = Field(default=False, description="Create the target database when missing")
    database_creation_template: str | None = Field(
        default=None, description="Creation statement template; {database} is replaced by the database name"
    )

    # Variables
    enable_variables: bool = Field(default=True, description="Substitute ${name} tokens in scripts")
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Substitution variables (JSON object in the environment)",
    )

    # Seeding
    enable_seeding: bool = Field(default=False, description="Run seed scripts after migrations")
    global_seed_strategy: Annotated[
        SeedStrategy | None,
        BeforeValidator(normalize_strategy),
    ] = Field(default=None, description="Strategy forced on every seed")
    fallback_seed_strategy: Annotated[
        SeedStrategy,
        BeforeValidator(normalize_strategy),
    ] = Field(default=SeedStrategy.RUN_ONCE, description="Strategy when no convention matches")

    # Sub-settings
    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)


@lru_cache
def get_settings() -> DbReactorSettings:
    """Get cached settings instance."""
    return DbReactorSettings()
