"""Tests for relaying generated chunks into a streamable value."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from services.ai.exceptions import ModelConfigurationError, StreamFailure
from services.estimation.relay import relay_stream
from services.estimation.streamable import StreamState, create_streamable_value


def _source(chunks, error: Exception | None = None):
    async def stream() -> AsyncIterator[str | None]:
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    return stream


@pytest.mark.asyncio
async def test_chunks_are_relayed_in_order_then_done() -> None:
    value, writer = create_streamable_value()

    await relay_stream(_source(["Based", " on", " your specs..."]), writer)

    assert value.state is StreamState.DONE
    assert value.value == "Based on your specs..."


@pytest.mark.asyncio
async def test_empty_stream_completes_with_empty_text() -> None:
    value, writer = create_streamable_value()

    await relay_stream(_source([]), writer)

    assert value.state is StreamState.DONE
    assert value.value == ""


@pytest.mark.asyncio
async def test_none_and_empty_chunks_are_tolerated() -> None:
    value, writer = create_streamable_value()

    await relay_stream(_source(["a", None, "", "b"]), writer)

    assert value.value == "ab"
    assert value.state is StreamState.DONE


@pytest.mark.asyncio
async def test_failure_before_first_chunk_fails_the_value() -> None:
    value, writer = create_streamable_value()

    await relay_stream(_source([], RuntimeError("503 overloaded")), writer)

    assert value.state is StreamState.FAILED
    assert value.value == ""
    assert value.error is not None
    assert value.error.error_code == "stream_failed"
    assert "high demand" in value.error.message
    assert isinstance(value.error.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_failure_when_opening_the_stream_fails_the_value() -> None:
    value, writer = create_streamable_value()

    def open_stream() -> AsyncIterator[str | None]:
        raise ConnectionError("connection refused")

    await relay_stream(open_stream, writer)

    assert value.state is StreamState.FAILED
    assert value.error is not None
    assert "network issue" in value.error.message


@pytest.mark.asyncio
async def test_domain_error_keeps_its_error_code() -> None:
    value, writer = create_streamable_value()

    def open_stream() -> AsyncIterator[str | None]:
        raise ModelConfigurationError()

    await relay_stream(open_stream, writer)

    assert value.state is StreamState.FAILED
    assert value.error is not None
    assert value.error.error_code == "provider_not_configured"
    assert "GEMINI_API_KEY" in value.error.message
    assert isinstance(value.error.__cause__, ModelConfigurationError)


@pytest.mark.asyncio
async def test_mid_stream_failure_keeps_partial_content() -> None:
    value, writer = create_streamable_value()
    failure = StreamFailure("Streaming generation failed")

    await relay_stream(_source(["Based", " on"], failure), writer)

    assert value.state is StreamState.FAILED
    assert value.value == "Based on"
    assert value.error is failure


@pytest.mark.asyncio
async def test_cancellation_fails_the_value_and_propagates() -> None:
    value, writer = create_streamable_value()
    gate = asyncio.Event()

    async def stream() -> AsyncIterator[str | None]:
        yield "first"
        await gate.wait()
        yield "never"

    task = asyncio.create_task(relay_stream(stream, writer))
    while value.value != "first":
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert value.state is StreamState.FAILED
    assert value.value == "first"
    assert value.error is not None
    assert "cancelled" in value.error.message
