"""Store-free collaborators for tests and embedding hosts."""

from dbreactor.testing.fakes import NullConnection, NullConnectionManager, RecordingScriptExecutor

__all__ = ["NullConnection", "NullConnectionManager", "RecordingScriptExecutor"]
