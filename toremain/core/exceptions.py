"""Domain exceptions raised by services.

API 레이어에서 HTTP 상태 코드로 변환된다 (status_code 속성 참조).
"""

from typing import Any, Optional


class ToremainError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ToremainError):
    """입력값 또는 비즈니스 규칙 위반"""

    status_code = 400


class NotFoundError(ToremainError):
    """조회 대상 없음"""

    status_code = 404


class PermissionDeniedError(ToremainError):
    """요청자에게 권한 없음"""

    status_code = 403


class AuthenticationError(ToremainError):
    """토큰 또는 자격 증명 오류"""

    status_code = 401


class ConflictError(ToremainError):
    """중복 등록, 동시 수정 충돌"""

    status_code = 409


class UpstreamError(ToremainError):
    """외부 서버(블록체인, AI) 통신 실패"""

    status_code = 502


class ContractError(ToremainError):
    """블록체인 서버가 요청을 거절함 (소유권 불일치, 트랜잭션 실패 등)"""

    status_code = 400


class ConfigurationError(ToremainError):
    """서버 설정 오류. 기동 시점에 드러나야 한다."""

    status_code = 500
