"""Text generation boundary used by the estimation pipeline.

`GenerationClient` is the only contract the orchestration code depends on:
one-shot `generate` and chunked `generate_stream`. The pydantic-ai adapter
below implements it against whatever model the factory selects, so the
vendor can change without touching the pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol

from httpx import AsyncClient, HTTPStatusError
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.retries import AsyncTenacityTransport, RetryConfig, wait_retry_after
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from core.observability import get_tracer
from services.ai.exceptions import (
    AIGenerationError,
    GenerationError,
    ModelConfigurationError,
    StreamFailure,
    describe_generation_failure,
)
from services.ai.model_factory import get_estimation_model


logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

RETRYABLE_STATUS_CODES = (429, 502, 503, 504)


def _create_resilient_http_client() -> AsyncClient:
    """HTTP client that retries overloaded or throttled provider calls.

    Backs off exponentially, honouring `Retry-After` when the provider sends it.
    Once the first streamed byte has arrived nothing is retried.
    """

    def should_retry_status(response: Any) -> None:
        if response.status_code in RETRYABLE_STATUS_CODES:
            response.raise_for_status()

    transport = AsyncTenacityTransport(
        config=RetryConfig(
            retry=retry_if_exception_type(HTTPStatusError),
            wait=wait_retry_after(
                fallback_strategy=wait_exponential(multiplier=2, min=1, max=30),
                max_wait=60,
            ),
            stop=stop_after_attempt(4),
            reraise=True,
        ),
        validate_response=should_retry_status,
    )
    return AsyncClient(transport=transport, timeout=120)


def create_estimation_model() -> Model:
    """Estimation model from the factory, wired to the retrying HTTP client."""
    return get_estimation_model(http_client=_create_resilient_http_client())


class GenerationClient(Protocol):
    """Opaque text-generation capability."""

    async def generate(self, prompt: str) -> str:
        """Return the complete text, or raise `GenerationError`."""
        ...

    def generate_stream(self, prompt: str) -> AsyncIterator[str | None]:
        """Return ordered text chunks whose concatenation is the answer.

        Implementations are async generator functions; failures surface as
        `StreamFailure` while iterating.
        """
        ...


class PydanticAIGenerationClient(GenerationClient):
    """`GenerationClient` backed by a plain-text pydantic-ai agent."""

    def __init__(
        self,
        model: Model | None = None,
        model_factory: Callable[[], Model] = create_estimation_model,
    ) -> None:
        # The model is resolved on first use so the service can start (and
        # be tested) without provider credentials.
        self._model = model
        self._model_factory = model_factory
        self._agent: Agent[None, str] | None = None

    def _get_agent(self) -> Agent[None, str]:
        if self._agent is None:
            model = self._model or self._model_factory()
            self._agent = Agent(model, output_type=str, name="material-estimator")
        return self._agent

    async def generate(self, prompt: str) -> str:
        with tracer.start_as_current_span("estimation.generate") as span:
            span.set_attribute("estimation.prompt_chars", len(prompt))
            try:
                result = await self._get_agent().run(prompt)
            except ModelConfigurationError:
                raise
            except AIGenerationError as exc:
                raise GenerationError(exc.message) from exc
            except Exception as exc:
                logger.error(
                    "Estimation generation failed: %s", exc.__class__.__name__
                )
                raise GenerationError(describe_generation_failure(exc)) from exc
            span.set_attribute("estimation.output_chars", len(result.output))
            return result.output

    async def generate_stream(self, prompt: str) -> AsyncIterator[str | None]:
        try:
            agent = self._get_agent()
            async with agent.run_stream(prompt) as result:
                # debounce_by=None keeps provider chunk boundaries intact
                async for delta in result.stream_text(delta=True, debounce_by=None):
                    yield delta
        except StreamFailure:
            raise
        except AIGenerationError as exc:
            raise StreamFailure(exc.message, error_code=exc.error_code) from exc
        except Exception as exc:
            logger.error(
                "Estimation stream generation failed: %s", exc.__class__.__name__
            )
            raise StreamFailure(describe_generation_failure(exc)) from exc
