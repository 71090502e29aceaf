"""Game event API endpoints: UE5 -> AI server gateway."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from fastapi.responses import JSONResponse

from toremain.api.deps import get_game_event_service, require_user
from toremain.api.schemas import ErrorResponse, Ue5NpcRequest, UserInfo
from toremain.services.game_event_service import GameEventService

router = APIRouter(prefix="/api", tags=["game-events"])


@router.post(
    "/npc",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def npc_chat(
    request: Ue5NpcRequest,
    service: GameEventService = Depends(get_game_event_service),
    user: UserInfo = Depends(require_user),
) -> JSONResponse:
    """
    NPC 대화

    NPC/프로필 정보를 덧붙여 AI 서버 `/api.ai/npc` 로 전달하고
    응답 상태 코드와 본문을 그대로 돌려줍니다.
    chatHistory 가 40 개를 넘으면 마지막 두 레코드를 잘라냅니다.
    """
    status_code, body = service.forward_npc(request.model_dump())
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/material",
    responses={502: {"model": ErrorResponse}},
)
def material(
    body: dict[str, Any] = Body(...),
    service: GameEventService = Depends(get_game_event_service),
    user: UserInfo = Depends(require_user),
) -> Response:
    """재질/색상 생성 요청을 AI 서버 `/api.ai/material` 로 그대로 전달"""
    result = service.forward_material(body)
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type=result.content_type,
    )
