"""
Neo4j Database Provisioner.

Checks for and creates the target database through the ``system``
database. Creating databases needs Neo4j Enterprise Edition or an
equivalent administrative role.
"""

import re
from typing import Any

import structlog
from neo4j.exceptions import DriverError, Neo4jError

from dbreactor.backends.neo4j.connection import Neo4jConnectionManager
from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.exceptions import ProvisioningError
from dbreactor.core.interfaces import DatabaseProvisioner

logger = structlog.get_logger(__name__)

SYSTEM_DATABASE = "system"
DEFAULT_CREATION_TEMPLATE = "CREATE DATABASE `{database}` IF NOT EXISTS WAIT"
DATABASE_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9.\-]{2,62}$")


class Neo4jDatabaseProvisioner(DatabaseProvisioner):
    """
    Provisions the database a Neo4jConnectionManager points at.

    A creation template is a Cypher statement run on the system database;
    ``{database}`` in it is replaced by the database name.

    Usage:
        ```python
        provisioner = Neo4jDatabaseProvisioner(connection_manager)
        await provisioner.ensure_database_exists()
        ```
    """

    def __init__(self, connection_manager: Neo4jConnectionManager, database: str | None = None) -> None:
        name = database or connection_manager.database
        if not DATABASE_NAME_PATTERN.match(name):
            raise ValueError(f"Invalid Neo4j database name: {name!r}")
        self._connection_manager = connection_manager
        self.database = name

    async def _system_query(
        self,
        operation: str,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            async with self._connection_manager.connection(database=SYSTEM_DATABASE) as session:
                result = await session.run(query, parameters or {})
                records: list[dict[str, Any]] = await result.data()
        except (Neo4jError, DriverError, OSError) as e:
            logger.error("Provisioning query failed", database=self.database, operation=operation, error=str(e))
            raise ProvisioningError(f"Database {operation} failed: {e}", operation=operation) from e
        return records

    async def database_exists(self, cancellation: CancellationToken | None = None) -> bool:
        records = await self._system_query(
            "lookup",
            "SHOW DATABASES YIELD name WHERE name = $name RETURN name",
            {"name": self.database},
        )
        return bool(records)

    async def create_database(
        self,
        template: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        statement = (template or DEFAULT_CREATION_TEMPLATE).replace("{database}", self.database)
        logger.info("Creating database", database=self.database)
        await self._system_query("creation", statement)
        logger.info("Database created", database=self.database)
