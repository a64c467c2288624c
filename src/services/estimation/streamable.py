"""Single-writer incremental text value.

`create_streamable_value()` returns a pair: a read-only `StreamableValue`
handed to whoever wants to watch the estimation grow, and the one
`StreamableWriter` allowed to change it. The reader side exposes no
mutators, so only the holder of the writer (the stream relay) can append.

Lifecycle::

    pending --update--> streaming --done--> done
        \\                   \\
         `-------fail--------`--fail--> failed

`done` and `failed` are terminal. Any writer call after a terminal signal
raises `StreamClosedError` and leaves the content untouched.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from enum import StrEnum

from services.ai.exceptions import StreamFailure


class StreamState(StrEnum):
    PENDING = "pending"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({StreamState.DONE, StreamState.FAILED})


class StreamClosedError(RuntimeError):
    """Raised when a writer is used after the value reached a terminal state."""


class StreamableValue:
    """Read side of an incremental text value."""

    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._state = StreamState.PENDING
        self._error: StreamFailure | None = None
        self._completed_at: datetime | None = None
        self._changed = asyncio.Event()

    @property
    def value(self) -> str:
        """Text received so far; empty before the first chunk."""
        return "".join(self._chunks)

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def error(self) -> StreamFailure | None:
        return self._error

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def completed_at(self) -> datetime | None:
        """When the terminal signal arrived (UTC), or None while in flight."""
        return self._completed_at

    async def deltas(self) -> AsyncIterator[str]:
        """Yield every chunk from the start, then follow new ones live.

        Ends when the value is done. If it failed, the chunks that did arrive
        are yielded first and then the stored `StreamFailure` is raised.
        """
        index = 0
        while True:
            # Grab the event before draining so a notify during a yield is seen
            changed = self._changed
            while index < len(self._chunks):
                yield self._chunks[index]
                index += 1
            if self._state is StreamState.DONE:
                return
            # Only fail() sets the error, together with the FAILED state
            if self._error is not None:
                raise self._error
            await changed.wait()

    async def wait(self) -> str:
        """Wait for a terminal state and return the full text."""
        async for _ in self.deltas():
            pass
        return self.value

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()


class StreamableWriter:
    """The only handle able to change its `StreamableValue`."""

    __slots__ = ("_target",)

    def __init__(self, target: StreamableValue) -> None:
        self._target = target

    def _ensure_open(self, operation: str) -> None:
        if self._target.is_terminal:
            raise StreamClosedError(
                f"Cannot {operation}: value is already {self._target.state}"
            )

    def update(self, chunk: str | None) -> None:
        """Append a chunk; `None` and `""` count as zero-length appends."""
        self._ensure_open("update")
        target = self._target
        target._state = StreamState.STREAMING
        if chunk:
            target._chunks.append(chunk)
        target._notify()

    def done(self) -> None:
        self._ensure_open("complete")
        self._close(StreamState.DONE)

    def fail(self, error: StreamFailure) -> None:
        """Terminate with an error; chunks already received are kept."""
        self._ensure_open("fail")
        self._target._error = error
        self._close(StreamState.FAILED)

    def _close(self, state: StreamState) -> None:
        target = self._target
        target._state = state
        target._completed_at = datetime.now(UTC)
        target._notify()


def create_streamable_value() -> tuple[StreamableValue, StreamableWriter]:
    """Create a value together with its single writer."""
    value = StreamableValue()
    return value, StreamableWriter(value)
