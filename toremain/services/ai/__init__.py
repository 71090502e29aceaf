"""AI server client module."""

from toremain.services.ai.base import AIClient, AIResponse
from toremain.services.ai.factory import get_ai_client
from toremain.services.ai.http import HttpAIClient
from toremain.services.ai.mock import MockAIClient

__all__ = [
    "AIClient",
    "AIResponse",
    "HttpAIClient",
    "MockAIClient",
    "get_ai_client",
]
