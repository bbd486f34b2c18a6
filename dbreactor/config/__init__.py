"""Environment settings."""

from dbreactor.config.settings import DbReactorSettings, Neo4jSettings, get_settings

__all__ = ["DbReactorSettings", "Neo4jSettings", "get_settings"]
