"""
Neo4j Script Executor.

Runs Cypher scripts. A script may hold several statements separated by a
semicolon at the end of a line. Neo4j refuses transactions that mix schema
changes with data writes, so statements are grouped into batches:
- every schema statement (``CREATE``/``DROP`` of an index or constraint)
  runs alone in its own transaction
- consecutive data statements share one explicit write transaction

Each batch commits on its own. A failing batch is rolled back, but batches
committed before it stay applied; a script is only atomic when it holds a
single batch.
"""

import re

import structlog
from neo4j.exceptions import Neo4jError

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.interfaces import ConnectionManager, ScriptExecutor
from dbreactor.core.models import ExecutionResult, Script

logger = structlog.get_logger(__name__)

STATEMENT_SEPARATOR = re.compile(r";[ \t]*(?:\r?\n|$)")

SCHEMA_STATEMENT = re.compile(
    r"^(?:\s*//[^\n]*\n)*\s*(?:CREATE|DROP)\s+"
    r"(?:(?:RANGE|TEXT|POINT|LOOKUP|FULLTEXT|VECTOR|BTREE)\s+)?(?:CONSTRAINT|INDEX)\b",
    re.IGNORECASE,
)


def split_statements(content: str) -> list[str]:
    """
    Split script content into statements.

    Only a ``;`` followed by end of line separates statements, so semicolons
    inside string literals on the same line are kept.
    """
    return [s.strip() for s in STATEMENT_SEPARATOR.split(content) if s.strip()]


def is_schema_statement(statement: str) -> bool:
    return SCHEMA_STATEMENT.match(statement) is not None


def group_statements(statements: list[str]) -> list[list[str]]:
    """Split statements into transaction batches, schema statements alone."""
    batches: list[list[str]] = []
    for statement in statements:
        if is_schema_statement(statement) or not batches or is_schema_statement(batches[-1][0]):
            batches.append([statement])
        else:
            batches[-1].append(statement)
    return batches


class Neo4jScriptExecutor(ScriptExecutor):
    """Executes Cypher scripts through a Neo4jConnectionManager session."""

    async def execute(
        self,
        script: Script,
        connection_manager: ConnectionManager,
        cancellation: CancellationToken | None = None,
    ) -> ExecutionResult:
        statements = split_statements(script.content)
        if not statements:
            return ExecutionResult.failure("Script contains no statements", script=script)

        batches = group_statements(statements)
        committed = 0

        async with connection_manager.connection() as session:
            for batch in batches:
                tx = await session.begin_transaction()
                try:
                    for statement in batch:
                        result = await tx.run(statement)
                        await result.consume()
                    await tx.commit()
                except Neo4jError as e:
                    logger.error(
                        "Cypher script failed",
                        script=script.name,
                        code=e.code,
                        error=e.message,
                        committed_batches=committed,
                    )
                    return ExecutionResult.failure(e.message or str(e), script=script, error=e)
                finally:
                    await tx.close()
                committed += 1

        logger.debug(
            "Cypher script executed",
            script=script.name,
            statements=len(statements),
            transactions=len(batches),
        )
        return ExecutionResult.success(script)
