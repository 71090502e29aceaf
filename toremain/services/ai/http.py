"""HTTP client for the AI server."""

from typing import Any, Optional

import httpx

from toremain.core.exceptions import UpstreamError
from toremain.core.logging import get_logger
from toremain.services.ai.base import AIClient, AIResponse

logger = get_logger(__name__)

NPC_PATH = "/api.ai/npc"
MATERIAL_PATH = "/api.ai/material"


class HttpAIClient(AIClient):
    """AI server client using httpx."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        logger.info("HttpAIClient initialized: %s", self._base_url)

    @property
    def name(self) -> str:
        return "http"

    def close(self) -> None:
        self._client.close()

    def post_npc(self, payload: dict[str, Any]) -> AIResponse:
        return self._post(NPC_PATH, payload)

    def post_material(self, body: dict[str, Any]) -> AIResponse:
        return self._post(MATERIAL_PATH, body)

    def _post(self, path: str, payload: dict[str, Any]) -> AIResponse:
        try:
            response = self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error("AI 서버 통신 오류 (%s): %s", path, e)
            raise UpstreamError(f"AI 서버 통신 오류: {e}") from e

        if response.is_error:
            logger.warning(
                "AI 서버 오류 응답: %s HTTP %d", path, response.status_code
            )
        return AIResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", "application/json"),
        )
