"""
Seed Strategies.

Convention parsing and run decisions are kept apart:
- parse_strategy / parse_strategy_from_name turn a path or file name into
  a SeedStrategy (or None)
- run_once / run_always / run_if_changed decide, from journal state,
  whether a seed must run now
"""

import re
from collections.abc import Callable

from dbreactor.core.cancellation import CancellationToken
from dbreactor.core.interfaces import SeedJournal
from dbreactor.core.models import Seed, SeedStrategy

_SEGMENT_SEPARATORS = re.compile(r"[./\\]")
_TRAILING_EXTENSION = re.compile(r"\.[^./\\]*$")

_FOLDER_TOKENS: dict[str, SeedStrategy] = {
    "run-once": SeedStrategy.RUN_ONCE,
    "run-always": SeedStrategy.RUN_ALWAYS,
    "run-if-changed": SeedStrategy.RUN_IF_CHANGED,
}

# Checked in order; "run_if_changed" must not be shadowed by a shorter token
_NAME_TOKENS: list[tuple[tuple[str, ...], SeedStrategy]] = [
    (("run_always", "runalways"), SeedStrategy.RUN_ALWAYS),
    (("run_if_changed", "runifchanged"), SeedStrategy.RUN_IF_CHANGED),
    (("run_once", "runonce"), SeedStrategy.RUN_ONCE),
]


def _normalize_segment(segment: str) -> str:
    return segment.lower().replace("_", "-").replace(" ", "-")


def parse_strategy(path: str | None) -> SeedStrategy | None:
    """
    Resolve a strategy from the folders enclosing a seed.

    Segments are split on ``.``, ``/`` and ``\\``; the file name itself is
    ignored. The scan starts at the immediate parent and moves outward, so
    the nearest strategy folder wins.

    Examples:
        >>> parse_strategy("Seeds/run-once/S001.sql")
        <SeedStrategy.RUN_ONCE: 'run-once'>
        >>> parse_strategy("Seeds/run-always/run-once/S.sql")
        <SeedStrategy.RUN_ONCE: 'run-once'>
        >>> parse_strategy("App.Seeds.run_always.S003.sql")
        <SeedStrategy.RUN_ALWAYS: 'run-always'>
    """
    if not path:
        return None

    segments = [s for s in _SEGMENT_SEPARATORS.split(_TRAILING_EXTENSION.sub("", path)) if s]
    for segment in reversed(segments[:-1]):
        strategy = _FOLDER_TOKENS.get(_normalize_segment(segment))
        if strategy is not None:
            return strategy
    return None


def parse_strategy_from_name(name: str | None) -> SeedStrategy | None:
    """
    Resolve a strategy from a naming convention in the file name.

    ``S001_AdminUser_runonce.sql`` and ``S002-run-always.sql`` both carry a
    strategy; separators ``-`` and space are treated like ``_``.
    """
    if not name:
        return None

    file_name = _SEGMENT_SEPARATORS.split(_TRAILING_EXTENSION.sub("", name))[-1]
    normalized = file_name.lower().replace("-", "_").replace(" ", "_")
    for tokens, strategy in _NAME_TOKENS:
        if any(token in normalized for token in tokens):
            return strategy
    return None


# =============================================================================
# Run decisions
# =============================================================================


def run_once(last_hash: str | None, current_hash: str, executed: bool) -> bool:
    """Run only if this seed has never been recorded."""
    return not executed


def run_always(last_hash: str | None, current_hash: str, executed: bool) -> bool:
    return True


def run_if_changed(last_hash: str | None, current_hash: str, executed: bool) -> bool:
    """Run if never recorded or if the content changed since the last run."""
    return last_hash is None or last_hash != current_hash


DECISIONS: dict[SeedStrategy, Callable[[str | None, str, bool], bool]] = {
    SeedStrategy.RUN_ONCE: run_once,
    SeedStrategy.RUN_ALWAYS: run_always,
    SeedStrategy.RUN_IF_CHANGED: run_if_changed,
}


async def should_execute(
    seed: Seed,
    journal: SeedJournal,
    cancellation: CancellationToken | None = None,
) -> bool:
    """
    Decide whether a seed must run now.

    Reads the journal at decision time; nothing is cached between calls.
    """
    last_hash: str | None = None
    executed = False

    if seed.strategy == SeedStrategy.RUN_ONCE:
        executed = await journal.has_been_executed(seed, cancellation)
    elif seed.strategy == SeedStrategy.RUN_IF_CHANGED:
        last_hash = await journal.get_last_executed_hash(seed.name, cancellation)
        executed = last_hash is not None

    return DECISIONS[seed.strategy](last_hash, seed.hash, executed)


def execution_reason(strategy: SeedStrategy, would_execute: bool) -> str:
    """Human-readable explanation of a seed decision."""
    if would_execute:
        return {
            SeedStrategy.RUN_ALWAYS: "Will execute every time (run-always)",
            SeedStrategy.RUN_ONCE: "Not yet executed (run-once)",
            SeedStrategy.RUN_IF_CHANGED: "Content has changed or never executed (run-if-changed)",
        }[strategy]

    return {
        SeedStrategy.RUN_ONCE: "Already executed (run-once)",
        SeedStrategy.RUN_IF_CHANGED: "Content not changed since last execution (run-if-changed)",
    }.get(strategy, f"Strategy {strategy.value} determined not to execute")
