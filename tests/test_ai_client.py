"""AI 서버 클라이언트 테스트"""

import json
from unittest.mock import patch

import httpx
import pytest

from toremain.core.exceptions import UpstreamError
from toremain.services.ai import AIResponse, HttpAIClient, MockAIClient, get_ai_client
from toremain.services.ai.http import MATERIAL_PATH, NPC_PATH

BASE_URL = "http://ai.test"


def _client(handler) -> HttpAIClient:
    transport = httpx.MockTransport(handler)
    return HttpAIClient(BASE_URL, client=httpx.Client(base_url=BASE_URL, transport=transport))


class TestHttpAIClient:
    def test_post_npc(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"npcResponse": "안녕"})

        response = _client(handler).post_npc({"npcId": 1, "npcName": "Bob"})
        assert seen["path"] == NPC_PATH
        assert seen["body"]["npcName"] == "Bob"
        assert response.status_code == 200
        assert response.json() == {"npcResponse": "안녕"}

    def test_error_status_is_relayed(self):
        """4xx/5xx 는 예외 대신 그대로 반환"""

        def handler(request):
            return httpx.Response(503, json={"detail": "busy"})

        response = _client(handler).post_npc({})
        assert response.status_code == 503
        assert response.json() == {"detail": "busy"}

    def test_material_keeps_content_type(self):
        def handler(request):
            assert request.url.path == MATERIAL_PATH
            return httpx.Response(
                200,
                content=b"--b\r\n\r\ndata\r\n--b--",
                headers={"content-type": "multipart/form-data; boundary=b"},
            )

        response = _client(handler).post_material({"prompt": "red"})
        assert response.content == b"--b\r\n\r\ndata\r\n--b--"
        assert response.content_type.startswith("multipart/form-data")

    def test_transport_error_raises_upstream(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamError):
            _client(handler).post_npc({})


class TestAIResponse:
    def test_empty_body(self):
        assert AIResponse(status_code=204, content=b"").json() is None

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError):
            AIResponse(status_code=200, content=b"<html>").json()


class TestMockAIClient:
    def test_npc_reply_appends_history(self):
        mock = MockAIClient()
        response = mock.post_npc(
            {
                "npcId": 3,
                "npcName": "대장장이",
                "currentPlayerMessage": "안녕하세요",
                "previousChatHistory": [{"speaker": "npc", "message": "어서오게"}],
            }
        )
        body = response.json()
        assert body["npcId"] == 3
        assert [r["speaker"] for r in body["chatHistory"]] == ["npc", "player", "npc"]
        assert "대장장이" in body["npcResponse"]
        assert len(mock.requests) == 1


class TestFactory:
    def test_mock_provider(self):
        assert isinstance(get_ai_client("mock"), MockAIClient)

    def test_http_provider(self):
        with patch("toremain.services.ai.factory.settings") as mock_settings:
            mock_settings.AI_PROVIDER = "http"
            mock_settings.AI_SERVER_URL = BASE_URL
            mock_settings.AI_TIMEOUT = 5.0
            client = get_ai_client()
        assert isinstance(client, HttpAIClient)
        client.close()

    def test_unknown_provider_falls_back(self):
        assert isinstance(get_ai_client("gemini"), MockAIClient)
