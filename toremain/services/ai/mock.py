"""Mock AI client for testing and fallback."""

import json
from datetime import datetime, timezone
from typing import Any

from toremain.services.ai.base import AIClient, AIResponse

MOCK_MATERIAL_CONTENT = b"--mock-boundary\r\n\r\n[Mock] material\r\n--mock-boundary--\r\n"


class MockAIClient(AIClient):
    """Mock AI client that answers every NPC message with a static line.

    Used for testing and as a fallback when no AI server is configured.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    def post_npc(self, payload: dict[str, Any]) -> AIResponse:
        self.requests.append(payload)
        now = datetime.now(timezone.utc).isoformat()
        history = list(payload.get("previousChatHistory") or [])
        if payload.get("currentPlayerMessage"):
            history.append(
                {
                    "speaker": "player",
                    "message": payload["currentPlayerMessage"],
                    "timestamp": now,
                }
            )
        reply = f"[Mock] {payload.get('npcName') or 'NPC'}가 고개를 끄덕인다."
        history.append({"speaker": "npc", "message": reply, "timestamp": now})
        body = {
            "npcId": payload.get("npcId"),
            "chatHistory": history,
            "npcResponse": reply,
            "previousConversationSummary": payload.get("previousConversationSummary"),
        }
        return AIResponse(
            status_code=200,
            content=json.dumps(body, ensure_ascii=False).encode("utf-8"),
        )

    def post_material(self, body: dict[str, Any]) -> AIResponse:
        self.requests.append(body)
        return AIResponse(
            status_code=200,
            content=MOCK_MATERIAL_CONTENT,
            content_type="multipart/form-data; boundary=mock-boundary",
        )
