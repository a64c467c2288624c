"""Model factory for the estimation pipeline.

Selects the pydantic-ai model from configuration:

    from services.ai.model_factory import get_estimation_model

    model = get_estimation_model()  # Azure OpenAI or Gemini

Azure OpenAI wins when `LLM_PROVIDER=azure_openai` and its credentials are
complete; otherwise Gemini is used. With neither configured a
`ModelConfigurationError` is raised, which callers surface like any other
generation failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from openai import AsyncAzureOpenAI
from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import get_settings
from services.ai.exceptions import ModelConfigurationError


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)

# OpenAI reasoning models that accept the reasoning_effort setting
REASONING_MODELS = {
    "gpt-5-mini",
    "gpt-5-nano",
    "o1-mini",
    "o1",
    "o3-mini",
}


def _is_azure_provider() -> bool:
    return get_settings().LLM_PROVIDER == "azure_openai"


def _validate_azure_credentials() -> bool:
    """Check the Azure settings; logs and returns False when incomplete."""
    settings = get_settings()
    if (
        not settings.AZURE_OPENAI_ENDPOINT
        or not settings.AZURE_OPENAI_API_KEY
        or not settings.AZURE_OPENAI_API_VERSION
    ):
        logger.warning(
            "LLM_PROVIDER=azure_openai but credentials missing, falling back to Gemini"
        )
        return False
    return True


def _create_azure_model(
    model_name: str, http_client: AsyncClient | None = None
) -> Model:
    settings = get_settings()
    # Trailing slashes produce `//openai/...` URLs that Azure answers with 404
    azure_endpoint = (settings.AZURE_OPENAI_ENDPOINT or "").rstrip("/")
    azure_client = AsyncAzureOpenAI(
        azure_endpoint=azure_endpoint,
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    provider = OpenAIProvider(openai_client=azure_client)

    if model_name in REASONING_MODELS:
        logger.info("Applying low reasoning effort for reasoning model: %s", model_name)
        return OpenAIChatModel(
            model_name,
            provider=provider,
            settings={"openai_reasoning_effort": "low"},
        )
    return OpenAIChatModel(model_name, provider=provider)


def _create_gemini_model(
    model_name: str, http_client: AsyncClient | None = None
) -> Model:
    provider = GoogleProvider(
        api_key=get_settings().GEMINI_API_KEY, http_client=http_client
    )
    return cast(Model, GoogleModel(model_name, provider=provider))


def get_estimation_model(http_client: AsyncClient | None = None) -> Model:
    """Return the text model used for material estimation.

    Args:
        http_client: Optional HTTP client, e.g. one with custom retries.

    Raises:
        ModelConfigurationError: If no provider has usable credentials.
    """
    settings = get_settings()
    model_name = settings.ESTIMATION_MODEL

    if _is_azure_provider() and _validate_azure_credentials():
        logger.info("Using Azure OpenAI estimation model: %s", model_name)
        return _create_azure_model(model_name, http_client)

    if not settings.GEMINI_API_KEY:
        logger.warning("Gemini API key not configured")
        raise ModelConfigurationError()

    logger.info("Using Gemini estimation model: %s", model_name)
    return _create_gemini_model(model_name, http_client)
