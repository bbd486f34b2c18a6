"""
Unit Tests for the Core Data Model.

Tests hashing, scripts, migrations, results, cancellation and the error
hierarchy.
"""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from dbreactor.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from dbreactor.core.exceptions import (
    ConfigurationError,
    DbReactorError,
    DowngradeUnsupportedError,
    ExecutionError,
    JournalError,
)
from dbreactor.core.hashing import generate_hash
from dbreactor.core.models import (
    ExecutionResult,
    Migration,
    MigrationJournalEntry,
    ReactorResult,
    Script,
    strip_extension,
)


class TestHashing:
    """Test cases for content hashing."""

    def test_known_digest(self) -> None:
        """Test the digest is SHA-256 hex of the UTF-8 bytes."""
        assert generate_hash("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_hash_is_idempotent(self) -> None:
        """Test the same content always hashes the same."""
        assert generate_hash("CREATE TABLE x") == generate_hash("CREATE TABLE x")

    def test_hash_is_lowercase_hex(self) -> None:
        """Test output format."""
        digest = generate_hash("ünïcödé")
        assert len(digest) == 64
        assert digest == digest.lower()

    def test_empty_content_rejected(self) -> None:
        """Test empty content raises ValueError."""
        with pytest.raises(ValueError):
            generate_hash("")


class TestScript:
    """Test cases for Script."""

    def test_hash_computed_from_content(self) -> None:
        """Test the script hash is the content hash."""
        script = Script(name="001.sql", content="SELECT 1")
        assert script.hash == generate_hash("SELECT 1")

    def test_identical_content_identical_hash(self) -> None:
        """Test identity follows content, not name."""
        a = Script(name="a.sql", content="SELECT 1")
        b = Script(name="b.sql", content="SELECT 1")
        assert a.hash == b.hash

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_blank_content_rejected(self, content: str) -> None:
        """Test scripts must have non-whitespace content."""
        with pytest.raises(ValueError):
            Script(name="x.sql", content=content)

    def test_blank_name_rejected(self) -> None:
        """Test scripts must be named."""
        with pytest.raises(ValueError):
            Script(name="", content="SELECT 1")

    def test_script_is_frozen(self) -> None:
        """Test scripts are immutable."""
        script = Script(name="x.sql", content="SELECT 1")
        with pytest.raises(AttributeError):
            script.content = "SELECT 2"  # type: ignore[misc]

    def test_logical_path_defaults_to_name(self) -> None:
        """Test logical path fallback."""
        assert Script(name="x.sql", content="SELECT 1").logical_path == "x.sql"
        assert Script(name="x.sql", content="SELECT 1", path="run-once/x.sql").logical_path == "run-once/x.sql"

    def test_with_content_keeps_name_and_path(self) -> None:
        """Test runtime copies carry the new content only."""
        script = Script(name="x.sql", content="SELECT ${v}", path="dir/x.sql")
        copy = script.with_content("SELECT 1")

        assert copy.name == "x.sql"
        assert copy.path == "dir/x.sql"
        assert copy.content == "SELECT 1"
        assert script.content == "SELECT ${v}"


class TestMigration:
    """Test cases for Migration."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("001_Init.sql", "001_Init"),
            ("001_Init.SQL", "001_Init"),
            ("002_Graph.cypher", "002_Graph"),
            ("003_Code.py", "003_Code"),
            ("004_Notes.txt", "004_Notes.txt"),
            ("005.backup.sql", "005.backup"),
        ],
    )
    def test_strip_extension(self, name: str, expected: str) -> None:
        """Test one known extension is stripped, case-insensitively."""
        assert strip_extension(name) == expected

    def test_from_script_derives_name(self) -> None:
        """Test migration names drop the extension."""
        migration = Migration.from_script(Script(name="001_CreateTable.sql", content="CREATE TABLE t"))
        assert migration.name == "001_CreateTable"
        assert not migration.has_downgrade
        assert migration.downgrade_content is None

    def test_downgrade_attached(self) -> None:
        """Test downgrade pairing helpers."""
        up = Script(name="001.sql", content="CREATE TABLE t")
        down = Script(name="001.sql", content="DROP TABLE t")
        migration = Migration.from_script(up, down)

        assert migration.has_downgrade
        assert migration.downgrade_content == "DROP TABLE t"


class TestResults:
    """Test cases for execution and reactor results."""

    def test_failure_factory(self) -> None:
        """Test failed results carry message and error."""
        error = RuntimeError("boom")
        result = ExecutionResult.failure("boom", error=error)

        assert not result.successful
        assert result.error is error
        assert result.error_message == "boom"

    def test_reactor_result_counts(self) -> None:
        """Test executed count and failed script lookup."""
        ok = ExecutionResult.success(Script(name="a.sql", content="A"))
        bad = ExecutionResult.failure("nope", script=Script(name="b.sql", content="B"))
        result = ReactorResult(successful=False, scripts=(ok, bad), error_message="nope")

        assert result.executed_count == 1
        assert result.failed_script is bad
        assert result.to_dict()["scripts"][1]["script"] == "b.sql"

    def test_journal_entry_downgrade_support(self) -> None:
        """Test whitespace-only downgrade content counts as unsupported."""
        now = datetime.now(timezone.utc)
        with_down = MigrationJournalEntry(1, "h1", "001", "DROP TABLE t", now)
        blank_down = MigrationJournalEntry(2, "h2", "002", "  ", now)
        no_down = MigrationJournalEntry(3, "h3", "003", None, now, timedelta(seconds=1))

        assert with_down.supports_downgrade
        assert not blank_down.supports_downgrade
        assert not no_down.supports_downgrade
        assert no_down.to_dict()["execution_duration_ms"] == 1000


class TestCancellation:
    """Test cases for CancellationToken."""

    def test_token_starts_uncancelled(self) -> None:
        """Test a fresh token does not raise."""
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

    def test_cancel_raises(self) -> None:
        """Test raise_if_cancelled after cancel()."""
        token = CancellationToken()
        token.cancel()

        assert token.is_cancelled
        with pytest.raises(OperationCancelled):
            token.raise_if_cancelled()

    def test_ensure_token(self) -> None:
        """Test None becomes a live token and tokens pass through."""
        token = CancellationToken()
        assert ensure_token(token) is token
        assert isinstance(ensure_token(None), CancellationToken)

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        """Test wait() completes once cancelled."""
        token = CancellationToken()
        token.cancel()
        await token.wait()


class TestExceptions:
    """Test cases for the error hierarchy."""

    def test_hierarchy(self) -> None:
        """Test every error derives from DbReactorError."""
        for cls in (ConfigurationError, ExecutionError, JournalError, DowngradeUnsupportedError):
            assert issubclass(cls, DbReactorError)
        assert issubclass(DowngradeUnsupportedError, ExecutionError)

    def test_execution_error_carries_script(self) -> None:
        """Test script name and operation on execution errors."""
        error = ExecutionError("failed", script_name="001_Init")

        assert error.script_name == "001_Init"
        assert error.operation == "migration_execution"
        assert str(error) == "failed"

    def test_configuration_error_lists_problems(self) -> None:
        """Test configuration errors keep the individual problems."""
        error = ConfigurationError("invalid", errors=["a", "b"])
        assert error.errors == ["a", "b"]
        assert error.to_dict()["operation"] == "configuration"

    def test_operation_override(self) -> None:
        """Test an explicit operation replaces the class default."""
        assert JournalError("x").operation == "journal"
        assert JournalError("x", operation="store").operation == "store"
