"""
Neo4j Connection Manager.

Owns the async driver and hands out sessions for the configured database.
The driver is created lazily on first use and verified once.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession

from dbreactor.config.settings import Neo4jSettings, get_settings
from dbreactor.core.interfaces import ConnectionManager

logger = structlog.get_logger(__name__)


class Neo4jConnectionManager(ConnectionManager):
    """
    ConnectionManager over the official async Neo4j driver.

    Usage:
        ```python
        manager = Neo4jConnectionManager()
        async with manager.connection() as session:
            await session.run("RETURN 1")
        await manager.close()
        ```
    """

    def __init__(self, settings: Neo4jSettings | None = None) -> None:
        self._driver: AsyncDriver | None = None
        self._settings = settings or get_settings().neo4j

    @property
    def database(self) -> str:
        return self._settings.database

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    async def connect(self) -> None:
        """Create the driver and verify connectivity."""
        if self._driver is not None:
            return

        self._driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password.get_secret_value()),
            max_connection_pool_size=self._settings.max_connection_pool_size,
            connection_timeout=self._settings.connection_timeout_s,
        )
        await self._driver.verify_connectivity()
        logger.info("Connected to Neo4j", uri=self._settings.uri, database=self._settings.database)

    async def verify_connectivity(self) -> None:
        if self._driver is None:
            await self.connect()
            return
        await self._driver.verify_connectivity()

    async def close(self) -> None:
        """Close the driver."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")

    @asynccontextmanager
    async def connection(self, database: str | None = None) -> AsyncGenerator[AsyncSession, None]:
        """Session on the configured database (or ``database``), closed on exit."""
        if self._driver is None:
            await self.connect()

        assert self._driver is not None  # Type guard for mypy
        async with self._driver.session(database=database or self._settings.database) as session:
            yield session


def create_connection_manager(settings: Neo4jSettings | None = None) -> Neo4jConnectionManager:
    """Create a connection manager from settings (environment by default)."""
    return Neo4jConnectionManager(settings)
