"""Abstract base class for AI server clients."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class AIResponse:
    """AI 서버 응답 원문. 게이트웨이는 상태 코드와 본문을 그대로 중계한다."""

    status_code: int
    content: bytes
    content_type: str = "application/json"

    def json(self) -> Any:
        if not self.content:
            return None
        return json.loads(self.content)


class AIClient(ABC):
    """Abstract base class for AI server clients.

    Transport failures raise UpstreamError; HTTP error statuses
    are returned as-is so the caller can relay them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the client name."""
        ...

    @abstractmethod
    def post_npc(self, payload: dict[str, Any]) -> AIResponse:
        """Send an NPC chat request.

        Args:
            payload: Enriched chat request (npcName, npcDescription, ...).

        Returns:
            The AI server response.
        """
        ...

    @abstractmethod
    def post_material(self, body: dict[str, Any]) -> AIResponse:
        """Send a material generation request verbatim."""
        ...

    def close(self) -> None:
        """Release network resources."""
