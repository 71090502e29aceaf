"""Factory for creating AI client instances."""

from typing import Optional

from toremain.config import settings
from toremain.core.logging import get_logger
from toremain.services.ai.base import AIClient
from toremain.services.ai.http import HttpAIClient
from toremain.services.ai.mock import MockAIClient

logger = get_logger(__name__)


def get_ai_client(provider_name: Optional[str] = None) -> AIClient:
    """Get an AI client instance.

    Args:
        provider_name: Optional provider name. If not specified,
                      uses AI_PROVIDER from config.

    Returns:
        An AIClient instance.
    """
    name = provider_name or settings.AI_PROVIDER

    if name == "mock":
        logger.debug("Using MockAIClient")
        return MockAIClient()

    if name == "http":
        if settings.AI_SERVER_URL:
            logger.debug("Using HttpAIClient: %s", settings.AI_SERVER_URL)
            return HttpAIClient(
                base_url=settings.AI_SERVER_URL, timeout=settings.AI_TIMEOUT
            )
        else:
            logger.warning("AI_SERVER_URL not set, falling back to MockAIClient")
            return MockAIClient()

    # Fallback to MockAIClient for unknown providers
    logger.warning("Unknown provider '%s', falling back to MockAIClient", name)
    return MockAIClient()
