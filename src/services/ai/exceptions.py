"""Domain exceptions for text generation.

Each exception carries a stable `error_code` used in API error envelopes,
SSE error events and log fields. `message` is always safe to show to an end
user; the raw provider error stays on `__cause__`.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class AIGenerationError(Exception):
    """Base class for generation domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class GenerationError(AIGenerationError):
    """One-shot generation failed upstream (timeout, quota, policy...)."""

    def __init__(self, message: str = "Text generation failed") -> None:
        super().__init__(message=message, error_code="generation_failed")


class StreamFailure(AIGenerationError):
    """Streaming generation failed before or while chunks were delivered."""

    def __init__(
        self,
        message: str = "Streaming generation failed",
        error_code: str = "stream_failed",
    ) -> None:
        super().__init__(message=message, error_code=error_code)


class ModelConfigurationError(AIGenerationError):
    def __init__(
        self,
        message: str = (
            "No valid LLM provider configured. Either set Azure OpenAI "
            "credentials (AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY + "
            "AZURE_OPENAI_API_VERSION) or Gemini credentials (GEMINI_API_KEY)."
        ),
    ) -> None:
        super().__init__(message=message, error_code="provider_not_configured")


def describe_generation_failure(exc: BaseException) -> str:
    """Turn a provider exception into a message fit for the estimation UI."""
    if isinstance(exc, AIGenerationError):
        return exc.message

    exc_str = f"{exc.__class__.__name__} {exc}".lower()

    if "503" in exc_str or "overloaded" in exc_str or "unavailable" in exc_str:
        return (
            "The AI service is currently experiencing high demand. "
            "Please wait a moment and try again."
        )
    if "429" in exc_str or "rate limit" in exc_str or "quota" in exc_str:
        return "Too many estimation requests. Please wait a minute and try again."
    if "timeout" in exc_str or "timed out" in exc_str:
        return "The estimation took too long to complete. Please try again later."
    if "unexpectedmodelbehavior" in exc_str or "safety" in exc_str:
        return (
            "The AI could not produce an estimation for these specifications. "
            "Please adjust the project details and try again."
        )
    if "connection" in exc_str or "network" in exc_str:
        return (
            "There was a network issue connecting to the AI service. "
            "Please try again."
        )
    return "The AI service could not complete the estimation."
