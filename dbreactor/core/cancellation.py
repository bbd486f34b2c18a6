"""
Cooperative cancellation.

A CancellationToken is checked between script executions, never during
one. A script that has started always runs to completion (or to its own
failure); cancelling only prevents the next script from starting.
"""

import asyncio


class OperationCancelled(Exception):
    """Raised by CancellationToken.raise_if_cancelled()."""


class CancellationToken:
    """
    Cancellation signal shared between a caller and a running operation.

    Usage:
        ```python
        token = CancellationToken()
        task = asyncio.create_task(engine.apply_upgrades(token))

        token.cancel()          # next script will not start
        result = await task
        assert result.cancelled
        ```
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation cancelled")

    async def wait(self) -> None:
        """Wait until cancellation is requested."""
        await self._event.wait()

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that is never cancelled."""
        return cls()


def ensure_token(token: CancellationToken | None) -> CancellationToken:
    """Return the given token, or a fresh never-cancelled one."""
    return token if token is not None else CancellationToken.none()
