"""인증 Service: 사용자 등록, 로그인, 토큰 갱신/폐기"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from toremain.core.exceptions import AuthenticationError, ConflictError, ValidationError
from toremain.core.logging import get_logger
from toremain.core.security import (
    REFRESH,
    TokenProvider,
    hash_password,
    verify_password,
)
from toremain.db.models import RevokedToken, User

logger = get_logger(__name__)

TOKEN_TYPE = "Bearer"
LOGIN_FAILED_MESSAGE = "사용자명 또는 비밀번호가 잘못되었습니다"


@dataclass
class LoginResult:
    success: bool
    message: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = TOKEN_TYPE
    expires_in: Optional[int] = None


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    username: str
    token_type: str = TOKEN_TYPE


class AuthService:
    """사용자 자격 증명 검증과 JWT 발급"""

    def __init__(self, db: Session, token_provider: TokenProvider):
        self._db = db
        self._tokens = token_provider

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._db.query(User).filter(User.username == username).first()

    def register(
        self, username: str, password: str, wallet_address: Optional[str] = None
    ) -> User:
        """사용자 등록. 중복 username/wallet 은 ConflictError."""
        if not username or not password:
            raise ValidationError("사용자명과 비밀번호는 필수입니다.")
        if self.get_user_by_username(username) is not None:
            raise ConflictError("이미 존재하는 사용자명입니다.")
        if wallet_address:
            exists = (
                self._db.query(User)
                .filter(User.wallet_address == wallet_address)
                .first()
            )
            if exists is not None:
                raise ConflictError("이미 등록된 지갑 주소입니다.")

        user = User(
            username=username,
            password=hash_password(password),
            wallet_address=wallet_address or None,
        )
        self._db.add(user)
        self._db.commit()
        self._db.refresh(user)
        logger.info("User registered: %s (id=%d)", username, user.id)
        return user

    def login(self, username: str, password: str) -> LoginResult:
        """자격 증명 확인 후 access/refresh 토큰 발급.

        실패 시 예외 대신 success=False 결과를 돌려준다.
        """
        user = self.get_user_by_username(username)
        if user is None or not verify_password(password, user.password):
            logger.info("Login failed: %s", username)
            return LoginResult(success=False, message=LOGIN_FAILED_MESSAGE)

        logger.info("Login success: %s", username)
        return LoginResult(
            success=True,
            message="로그인 성공",
            access_token=self._tokens.generate_access_token(user.username),
            refresh_token=self._tokens.generate_refresh_token(user.username),
            expires_in=self._tokens.access_validity,
        )

    def refresh(self, refresh_token: str) -> TokenPair:
        """Refresh token 으로 새 토큰 쌍 발급.

        Raises:
            AuthenticationError: 토큰 무효, 만료, 폐기, 사용자 없음
        """
        claims = self._tokens.decode(refresh_token, expected_type=REFRESH)
        if self._is_revoked(claims.jti):
            raise AuthenticationError("Refresh token has been revoked")

        if self.get_user_by_username(claims.username) is None:
            raise AuthenticationError(f"User not found: {claims.username}")

        # 갱신할 때마다 이전 refresh token 은 폐기
        self._revoke(claims.jti, claims.username, claims.expires_at)
        self._db.commit()

        return TokenPair(
            access_token=self._tokens.generate_access_token(claims.username),
            refresh_token=self._tokens.generate_refresh_token(claims.username),
            expires_in=self._tokens.access_validity,
            username=claims.username,
        )

    def logout(self, refresh_token: Optional[str]) -> bool:
        """Refresh token 을 폐기 목록에 기록. 유효하지 않은 토큰은 무시."""
        if not refresh_token:
            return False
        try:
            claims = self._tokens.decode(refresh_token, expected_type=REFRESH)
        except AuthenticationError as e:
            logger.info("Logout with unusable token: %s", e.message)
            return False

        if not self._is_revoked(claims.jti):
            self._revoke(claims.jti, claims.username, claims.expires_at)
            self._db.commit()
        logger.info("User logged out: %s", claims.username)
        return True

    def _is_revoked(self, jti: str) -> bool:
        if not jti:
            return False
        return self._db.get(RevokedToken, jti) is not None

    def _revoke(self, jti: str, username: str, expires_at: datetime) -> None:
        if not jti:
            return
        self._db.add(
            RevokedToken(
                jti=jti,
                username=username,
                # DB 에는 naive UTC 로 저장
                expires_at=expires_at.astimezone(timezone.utc).replace(tzinfo=None),
            )
        )
