"""Relay streamed generation chunks into a `StreamableWriter`."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from core.observability import get_tracer
from services.ai.exceptions import (
    AIGenerationError,
    StreamFailure,
    describe_generation_failure,
)
from services.estimation.streamable import StreamableWriter


logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

ChunkSource = Callable[[], AsyncIterator[str | None]]


async def relay_stream(open_stream: ChunkSource, writer: StreamableWriter) -> None:
    """Copy chunks in arrival order, then signal exactly one terminal state.

    `open_stream` is invoked inside the error boundary so a provider call that
    fails before yielding anything still ends in `fail()`. Errors never
    escape: the failure is stored on the value for its readers. Cancellation
    fails the value and is then re-raised.
    """
    chunk_count = 0
    char_count = 0
    with tracer.start_as_current_span("estimation.relay") as span:
        try:
            async for chunk in open_stream():
                writer.update(chunk)
                chunk_count += 1
                char_count += len(chunk or "")
        except asyncio.CancelledError:
            logger.info("Estimation relay cancelled after %d chunks", chunk_count)
            writer.fail(
                StreamFailure("The estimation was cancelled before it finished.")
            )
            raise
        except Exception as exc:
            logger.warning(
                "Estimation stream failed after %d chunks: %s",
                chunk_count,
                exc.__class__.__name__,
                exc_info=True,
            )
            if isinstance(exc, StreamFailure):
                failure = exc
            elif isinstance(exc, AIGenerationError):
                failure = StreamFailure(exc.message, error_code=exc.error_code)
                failure.__cause__ = exc
            else:
                failure = StreamFailure(describe_generation_failure(exc))
                failure.__cause__ = exc
            span.set_attribute("estimation.failed", True)
            writer.fail(failure)
            return
        finally:
            span.set_attribute("estimation.chunks", chunk_count)
            span.set_attribute("estimation.chars", char_count)

        writer.done()
        logger.debug(
            "Estimation stream completed: %d chunks, %d chars", chunk_count, char_count
        )
