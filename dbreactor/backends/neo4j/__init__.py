"""
Neo4j Backend.

Production collaborators on the official async ``neo4j`` driver:
- Connection manager (lazy driver, one session per scope)
- Cypher script executor (schema statements in their own transactions)
- Migration and seed journals stored as nodes
- Database provisioner on the system database
"""

from dbreactor.backends.neo4j.connection import Neo4jConnectionManager, create_connection_manager
from dbreactor.backends.neo4j.executor import Neo4jScriptExecutor, group_statements, split_statements
from dbreactor.backends.neo4j.journal import Neo4jMigrationJournal, Neo4jSeedJournal
from dbreactor.backends.neo4j.provisioner import Neo4jDatabaseProvisioner

__all__ = [
    "Neo4jConnectionManager",
    "create_connection_manager",
    "Neo4jScriptExecutor",
    "split_statements",
    "group_statements",
    "Neo4jMigrationJournal",
    "Neo4jSeedJournal",
    "Neo4jDatabaseProvisioner",
]
