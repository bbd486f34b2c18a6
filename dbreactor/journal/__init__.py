"""In-memory journal implementations."""

from dbreactor.journal.memory import InMemoryMigrationJournal, InMemorySeedJournal

__all__ = ["InMemoryMigrationJournal", "InMemorySeedJournal"]
