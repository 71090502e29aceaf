"""Auth API endpoints: register, login, token refresh, logout."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from toremain.api.deps import get_auth_service, require_user
from toremain.api.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserInfo,
)
from toremain.services.auth_service import AuthService

router = APIRouter(prefix="/api", tags=["auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def register(
    request: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """사용자 등록"""
    user = service.register(request.username, request.password, request.wallet_address)
    return RegisterResponse(user_id=user.id)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": LoginResponse}},
)
def login(
    request: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    로그인

    성공 시 access/refresh 토큰을 발급합니다.
    Access Token 은 `Authorization: Bearer {access_token}` 헤더로 사용합니다.
    """
    result = service.login(request.username, request.password)
    response = LoginResponse(
        success=result.success,
        message=result.message,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        token_type=result.token_type,
        expires_in=result.expires_in,
    )
    if not result.success:
        return JSONResponse(status_code=400, content=response.model_dump())
    return response


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}},
)
def refresh(
    request: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Refresh Token 으로 토큰 쌍 재발급 (이전 refresh token 은 폐기)"""
    pair = service.refresh(request.refresh_token)
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
        username=pair.username,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: LogoutRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Refresh Token 폐기. 클라이언트도 보관 중인 토큰을 삭제해야 합니다."""
    service.logout(request.refresh_token)
    return MessageResponse(message="로그아웃 되었습니다")


@router.get(
    "/me",
    response_model=UserInfo,
    responses={401: {"model": ErrorResponse}},
)
def me(user: UserInfo = Depends(require_user)) -> UserInfo:
    """현재 인증된 사용자"""
    return user
