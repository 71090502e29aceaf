"""JWT 토큰 발급/검증과 비밀번호 해싱

Access Token (기본 1시간) 과 Refresh Token (기본 24시간) 을 HS256 으로 서명한다.
두 토큰은 `typ` 클레임으로 구분되며, refresh token 을 API 요청에 쓰거나
access token 으로 갱신을 요청하면 검증에 실패한다.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from toremain.core.exceptions import AuthenticationError
from toremain.core.logging import get_logger

logger = get_logger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # 해시 형식이 아닌 값이 저장된 경우
        logger.warning("Stored password is not a bcrypt hash")
        return False


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """지갑 주소 비교. EIP-55 체크섬 대소문자는 무시한다."""
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()


@dataclass
class TokenClaims:
    """검증된 토큰의 클레임"""

    username: str
    token_type: str
    jti: str
    issued_at: datetime
    expires_at: datetime


class TokenProvider:
    """JWT 토큰 생성/검증

    Args:
        secret: 서명 비밀키
        access_validity: Access Token 유효기간 (초)
        refresh_validity: Refresh Token 유효기간 (초)
    """

    def __init__(
        self,
        secret: str,
        access_validity: int = 3600,
        refresh_validity: int = 86400,
        algorithm: str = "HS256",
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.access_validity = access_validity
        self.refresh_validity = refresh_validity

    def generate_access_token(self, username: str) -> str:
        return self._generate(username, ACCESS, self.access_validity)

    def generate_refresh_token(self, username: str) -> str:
        return self._generate(username, REFRESH, self.refresh_validity)

    def _generate(self, username: str, token_type: str, validity: int) -> str:
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "sub": username,
            "typ": token_type,
            "jti": str(uuid.uuid4()),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=validity)).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str, expected_type: Optional[str] = None) -> TokenClaims:
        """서명/만료/타입을 검증하고 클레임을 반환한다.

        Raises:
            AuthenticationError: 위조, 만료, 형식 오류, 타입 불일치
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {e}") from e

        username = payload.get("sub")
        token_type = payload.get("typ")
        if not username or not token_type:
            raise AuthenticationError("Token is missing required claims")
        if expected_type is not None and token_type != expected_type:
            raise AuthenticationError(
                f"Expected {expected_type} token, got {token_type}"
            )

        return TokenClaims(
            username=username,
            token_type=token_type,
            jti=payload.get("jti", ""),
            issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def get_username(self, token: str) -> str:
        return self.decode(token).username

    def validate(self, token: str, expected_type: Optional[str] = None) -> bool:
        try:
            self.decode(token, expected_type)
            return True
        except AuthenticationError:
            return False
