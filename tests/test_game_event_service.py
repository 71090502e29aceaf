"""GameEventService 테스트: NPC 대화 요청 보강과 응답 중계"""

import json
from typing import Any

import pytest

from toremain.core.exceptions import UpstreamError, ValidationError
from toremain.db.models import Npc
from toremain.services.ai import AIClient, AIResponse, MockAIClient
from toremain.services.game_event_service import (
    DEFAULT_PLAYER_DESCRIPTION,
    DEFAULT_SYSTEM_MESSAGES,
    MAX_CHAT_HISTORY,
    GameEventService,
    trim_chat_history,
)


class StaticAIClient(AIClient):
    """고정 응답을 돌려주는 테스트용 클라이언트"""

    def __init__(self, response: AIResponse) -> None:
        self.response = response
        self.payloads: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "static"

    def post_npc(self, payload: dict[str, Any]) -> AIResponse:
        self.payloads.append(payload)
        return self.response

    def post_material(self, body: dict[str, Any]) -> AIResponse:
        return self.response


@pytest.fixture()
def npc(db_session) -> Npc:
    npc = Npc(
        name="대장장이 한스",
        npc_info={"description": "마을 대장장이", "systemMessages": "친절하게 답한다"},
    )
    db_session.add(npc)
    db_session.commit()
    return npc


@pytest.fixture()
def ai() -> MockAIClient:
    return MockAIClient()


@pytest.fixture()
def service(db_session, ai) -> GameEventService:
    return GameEventService(db_session, ai)


def _history(n: int) -> list[dict[str, str]]:
    return [{"speaker": "npc", "message": f"m{i}"} for i in range(n)]


class TestTrimChatHistory:
    def test_under_limit_untouched(self):
        body = {"chatHistory": _history(MAX_CHAT_HISTORY)}
        assert len(trim_chat_history(body)["chatHistory"]) == MAX_CHAT_HISTORY

    def test_over_limit_drops_last_two(self):
        body = {"chatHistory": _history(MAX_CHAT_HISTORY + 1)}
        trimmed = trim_chat_history(body)["chatHistory"]
        assert len(trimmed) == MAX_CHAT_HISTORY - 1
        assert trimmed[-1]["message"] == f"m{MAX_CHAT_HISTORY - 2}"

    @pytest.mark.parametrize("body", [None, [], "text", {"chatHistory": None}])
    def test_non_dict_or_missing(self, body):
        assert trim_chat_history(body) == body


class TestBuildPayload:
    def test_enriches_with_npc_and_profile(self, service, ai, npc, make_user, make_profile):
        profile = make_profile(make_user(), "아린", level=7)
        status, body = service.forward_npc(
            {
                "npcId": npc.id,
                "profileId": profile.id,
                "chatType": "start",
                "currentPlayerMessage": {"speaker": "player", "message": "검을 고쳐줘"},
                "previousChatHistory": [
                    {"speaker": "npc", "message": "어서오게", "timestamp": "t0", "extra": 1}
                ],
                "apiKey": "k",
            }
        )
        assert status == 200
        payload = ai.requests[0]
        assert payload["chatType"] == "START"
        assert payload["npcName"] == "대장장이 한스"
        assert payload["npcDescription"] == "마을 대장장이"
        assert payload["systemMessages"] == "친절하게 답한다"
        assert payload["playerName"] == "아린"
        assert payload["playerDescription"] == "아린 (레벨: 7)"
        assert payload["currentPlayerMessage"] == "검을 고쳐줘"
        assert payload["previousChatHistory"] == [
            {"speaker": "npc", "message": "어서오게", "timestamp": "t0"}
        ]
        assert payload["apiKey"] == "k"
        assert body["npcId"] == npc.id

    def test_defaults_without_profile(self, service, ai, db_session):
        bare = Npc(name="행인", npc_info=None)
        db_session.add(bare)
        db_session.commit()
        service.forward_npc({"npcId": bare.id})
        payload = ai.requests[0]
        assert payload["playerName"] is None
        assert payload["playerDescription"] == DEFAULT_PLAYER_DESCRIPTION
        assert payload["systemMessages"] == DEFAULT_SYSTEM_MESSAGES
        assert payload["npcDescription"] == ""
        assert payload["chatType"] is None

    def test_unknown_profile_uses_default(self, service, ai, npc):
        service.forward_npc({"npcId": npc.id, "profileId": 999})
        assert ai.requests[0]["playerDescription"] == DEFAULT_PLAYER_DESCRIPTION

    def test_unknown_npc(self, service):
        with pytest.raises(ValidationError, match="NPC not found"):
            service.forward_npc({"npcId": 404})

    def test_unknown_chat_type(self, service, npc):
        with pytest.raises(ValidationError):
            service.forward_npc({"npcId": npc.id, "chatType": "SHOUT"})


class TestRelay:
    def test_status_and_body_relayed(self, db_session, npc):
        body = {"detail": "rate limited"}
        client = StaticAIClient(AIResponse(429, json.dumps(body).encode()))
        status, relayed = GameEventService(db_session, client).forward_npc({"npcId": npc.id})
        assert status == 429
        assert relayed == body

    def test_long_history_trimmed(self, db_session, npc):
        body = {"chatHistory": _history(MAX_CHAT_HISTORY + 2)}
        client = StaticAIClient(AIResponse(200, json.dumps(body).encode()))
        _, relayed = GameEventService(db_session, client).forward_npc({"npcId": npc.id})
        assert len(relayed["chatHistory"]) == MAX_CHAT_HISTORY

    def test_unparseable_response(self, db_session, npc):
        client = StaticAIClient(AIResponse(200, b"<html>oops</html>", "text/html"))
        with pytest.raises(UpstreamError):
            GameEventService(db_session, client).forward_npc({"npcId": npc.id})

    def test_material_passthrough(self, service, ai):
        response = service.forward_material({"prompt": "rusty iron"})
        assert response.status_code == 200
        assert response.content_type.startswith("multipart/form-data")
        assert ai.requests == [{"prompt": "rusty iron"}]
