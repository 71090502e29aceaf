"""FastAPI dependencies: services, authenticated user."""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from toremain.api.schemas import UserInfo
from toremain.config import settings
from toremain.core.event_bus import EventBus
from toremain.core.exceptions import AuthenticationError, PermissionDeniedError
from toremain.core.logging import get_logger
from toremain.core.security import TokenProvider, same_address
from toremain.db.database import get_db
from toremain.db.models import User
from toremain.services.ai import AIClient
from toremain.services.auth_service import AuthService
from toremain.services.blockchain import BlockchainClient
from toremain.services.game_event_service import GameEventService
from toremain.services.item_service import ItemService
from toremain.services.market_service import MarketDomain, MarketService
from toremain.services.nft_service import NftService
from toremain.services.profile_service import ProfileService

logger = get_logger(__name__)


# === 앱 단위 객체 ===


def get_token_provider(request: Request) -> TokenProvider:
    """TokenProvider 인스턴스 반환 (의존성 주입용)"""
    provider: TokenProvider = request.app.state.token_provider
    return provider


def get_blockchain_client(request: Request) -> BlockchainClient:
    client: BlockchainClient = request.app.state.blockchain_client
    return client


def get_ai_client(request: Request) -> AIClient:
    client: AIClient = request.app.state.ai_client
    return client


def get_event_bus() -> EventBus:
    """요청 단위 EventBus. 핸들러가 요청의 DB 세션을 그대로 쓴다."""
    return EventBus()


# === 서비스 ===


def get_auth_service(
    db: Session = Depends(get_db),
    tokens: TokenProvider = Depends(get_token_provider),
) -> AuthService:
    return AuthService(db, tokens)


def get_item_service(db: Session = Depends(get_db)) -> ItemService:
    return ItemService(db)


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_market_service(
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
) -> MarketService:
    domain = MarketDomain(
        name=settings.MARKET_DOMAIN_NAME,
        version=settings.MARKET_DOMAIN_VERSION,
        chain_id=settings.MARKET_CHAIN_ID,
        verifying_contract=settings.MARKET_CONTRACT_ADDRESS,
    )
    return MarketService(db, bus, domain)


def get_nft_service(
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    client: BlockchainClient = Depends(get_blockchain_client),
    _market: MarketService = Depends(get_market_service),  # nft 이벤트 구독 등록
) -> NftService:
    return NftService(
        db,
        bus,
        client,
        contract_address=settings.BLOCKCHAIN_CONTRACT_ADDRESS,
        server_url=settings.SERVER_URL,
    )


def get_game_event_service(
    db: Session = Depends(get_db),
    client: AIClient = Depends(get_ai_client),
) -> GameEventService:
    return GameEventService(db, client)


# === 인증 ===


def get_current_user(
    request: Request, db: Session = Depends(get_db)
) -> Optional[UserInfo]:
    """인증 미들웨어가 확인한 username 으로 사용자 조회. 익명이면 None."""
    username: Optional[str] = getattr(request.state, "username", None)
    if username is None:
        return None

    user = db.query(User).filter(User.username == username).first()
    if user is None:
        logger.warning("Token subject no longer exists: %s", username)
        return None

    info = UserInfo(id=user.id, username=user.username, wallet_address=user.wallet_address)
    request.state.user = info
    return info


def require_user(user: Optional[UserInfo] = Depends(get_current_user)) -> UserInfo:
    """보호된 라우트용. 인증 정보가 없으면 401."""
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


def ensure_same_user(user: UserInfo, user_id: int) -> None:
    if user.id != user_id:
        raise PermissionDeniedError("다른 사용자를 대신해 요청할 수 없습니다")


def ensure_wallet(user: UserInfo, wallet_address: str) -> None:
    if not same_address(user.wallet_address, wallet_address):
        raise PermissionDeniedError("요청한 지갑 주소의 소유자가 아닙니다")
