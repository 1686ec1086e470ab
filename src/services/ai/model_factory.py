"""Centralized AI model factory for report drafting.

Single source of truth for the pydantic-ai model behind drafting sessions,
supporting Gemini (default) and Azure OpenAI based on configuration.

Usage:
    from services.ai.model_factory import get_report_model

    model = get_report_model()  # Returns pydantic-ai Model
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import get_settings


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


def _normalize_azure_endpoint(endpoint: str) -> str:
    """Normalize Azure OpenAI endpoint.

    Trailing slashes lead to `//openai/...` URLs, which Azure treats as a
    different path and answers with 404.
    """
    return endpoint.rstrip("/")


def _is_azure_provider() -> bool:
    """Check if Azure OpenAI should be used based on configuration."""
    return get_settings().LLM_PROVIDER == "azure_openai"


def _validate_azure_credentials() -> bool:
    """Validate that Azure OpenAI credentials are properly configured."""
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


def _validate_gemini_credentials() -> bool:
    """Validate that Gemini API key is configured."""
    if not get_settings().GEMINI_API_KEY:
        logger.warning("Gemini API key not configured")
        return False
    return True


def _create_azure_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    """Create an Azure OpenAI model with the specified deployment name."""
    settings = get_settings()

    from openai import AsyncAzureOpenAI

    azure_client = AsyncAzureOpenAI(
        azure_endpoint=_normalize_azure_endpoint(settings.AZURE_OPENAI_ENDPOINT or ""),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    provider = OpenAIProvider(openai_client=azure_client)
    return OpenAIChatModel(model_name, provider=provider)


def _create_gemini_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    """Create a Google Gemini model with the specified model name."""
    settings = get_settings()
    provider = GoogleProvider(
        api_key=settings.GEMINI_API_KEY,
        http_client=http_client,
    )
    return cast(Model, GoogleModel(model_name, provider=provider))


def get_report_model(http_client: AsyncClient | None = None) -> Model:
    """Get the model used for drafting and editing reports.

    Args:
        http_client: Optional HTTP client shared with the provider.

    Returns:
        A pydantic-ai Model configured for the selected provider.

    Raises:
        ValueError: If no provider has usable credentials.
    """
    settings = get_settings()

    if _is_azure_provider() and _validate_azure_credentials():
        logger.info(f"Using Azure OpenAI report model: {settings.REPORT_MODEL}")
        return _create_azure_model(settings.REPORT_MODEL, http_client)

    if not _validate_gemini_credentials():
        raise ValueError(
            "No valid LLM provider configured. Either set Azure OpenAI "
            "credentials (AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY) "
            "or Gemini credentials (GEMINI_API_KEY)."
        )

    logger.info(f"Using Gemini report model: {settings.REPORT_MODEL}")
    return _create_gemini_model(settings.REPORT_MODEL, http_client)
