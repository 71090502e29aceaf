"""게임 이벤트 Service: UE5 클라이언트와 AI 서버 사이 게이트웨이

NPC 대화 요청은 DB 의 NPC/프로필 정보로 보강한 뒤 AI 서버에 전달하고,
재료(material) 생성 요청은 본문을 그대로 전달한다.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from toremain.core.exceptions import UpstreamError, ValidationError
from toremain.core.logging import get_logger
from toremain.db.models import Npc, UserGameProfile
from toremain.services.ai import AIClient, AIResponse

logger = get_logger(__name__)

DEFAULT_PLAYER_DESCRIPTION = "모험가"
DEFAULT_SYSTEM_MESSAGES = "시스템 메시지"
CHAT_TYPES = ("START", "CONTINUE", "END")

MAX_CHAT_HISTORY = 40
TRIM_COUNT = 2  # MAX_CHAT_HISTORY 초과 시 끝에서 제거할 레코드 수


def trim_chat_history(body: Any) -> Any:
    """chatHistory 가 MAX_CHAT_HISTORY 를 넘으면 마지막 TRIM_COUNT 개 제거"""
    if not isinstance(body, dict):
        return body
    history = body.get("chatHistory")
    if isinstance(history, list) and len(history) > MAX_CHAT_HISTORY:
        body["chatHistory"] = history[:-TRIM_COUNT]
    return body


def _convert_chat_record(record: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if record is None:
        return None
    return {
        "speaker": record.get("speaker"),
        "message": record.get("message"),
        "timestamp": record.get("timestamp"),
    }


class GameEventService:
    """NPC 대화 / material 요청 중계"""

    def __init__(self, db: Session, ai_client: AIClient):
        self._db = db
        self._ai = ai_client

    def forward_npc(self, request: dict[str, Any]) -> tuple[int, Any]:
        """NPC 대화 요청 보강 후 AI 서버로 전달. (status_code, body) 반환.

        Raises:
            ValidationError: NPC 없음, 알 수 없는 chatType
            UpstreamError: AI 서버 통신 실패 또는 잘못된 응답
        """
        npc_id = request.get("npcId")
        npc = self._db.get(Npc, npc_id) if npc_id is not None else None
        if npc is None:
            raise ValidationError(f"NPC not found: {npc_id}")

        payload = self.build_npc_payload(npc, request)
        response = self._ai.post_npc(payload)
        try:
            body = response.json()
        except ValueError as e:
            logger.error("AI 서버 응답 파싱 실패 (npc=%d): %s", npc.id, e)
            raise UpstreamError("AI 서버 응답을 해석할 수 없습니다") from e

        return response.status_code, trim_chat_history(body)

    def forward_material(self, body: dict[str, Any]) -> AIResponse:
        """material 요청 본문을 그대로 전달하고 응답 원문을 돌려준다."""
        return self._ai.post_material(body)

    def build_npc_payload(self, npc: Npc, request: dict[str, Any]) -> dict[str, Any]:
        npc_info = npc.npc_info or {}
        profile = self._find_profile(request.get("profileId"))

        chat_type = request.get("chatType")
        if chat_type is not None:
            chat_type = str(chat_type).upper()
            if chat_type not in CHAT_TYPES:
                raise ValidationError(f"Unknown chat type: {request.get('chatType')}")

        current = request.get("currentPlayerMessage")
        if isinstance(current, dict):
            current = current.get("message")

        history = request.get("previousChatHistory")
        if history is not None:
            history = [_convert_chat_record(r) for r in history]

        return {
            "chatType": chat_type,
            "npcId": npc.id,
            "npcName": npc.name,
            "playerName": profile.profile_name if profile is not None else None,
            "npcDescription": npc_info.get("description", ""),
            "playerDescription": self._describe_player(profile),
            "systemMessages": npc_info.get("systemMessages", DEFAULT_SYSTEM_MESSAGES),
            "currentPlayerMessage": current,
            "previousChatHistory": history,
            "previousConversationSummary": request.get("previousConversationSummary"),
            "apiKey": request.get("apiKey"),
        }

    def _find_profile(self, profile_id: Any) -> Optional[UserGameProfile]:
        if profile_id is None:
            return None
        return self._db.get(UserGameProfile, profile_id)

    @staticmethod
    def _describe_player(profile: Optional[UserGameProfile]) -> str:
        if profile is None:
            return DEFAULT_PLAYER_DESCRIPTION
        return f"{profile.profile_name} (레벨: {profile.level})"
