"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from toremain.db.models import ItemCategory, ItemType, OrderStatus
from toremain.services.profile_service import MAX_EXPERIENCE_GAIN


class ErrorResponse(BaseModel):
    """에러 응답"""

    success: bool = False
    error: str
    detail: Optional[dict[str, Any]] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# === Auth ===


class RegisterRequest(BaseModel):
    """사용자 등록 요청"""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=72)
    wallet_address: Optional[str] = Field(default=None, max_length=64)


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "사용자 등록 성공"
    user_id: int


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    """로그인 응답. 실패 시 토큰 필드는 None."""

    success: bool
    message: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    username: str


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class UserInfo(BaseModel):
    """인증된 사용자 정보"""

    id: int
    username: str
    wallet_address: Optional[str] = None


# === Items ===


class ItemDefinitionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: ItemType
    category: ItemCategory
    base_stats: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    is_stackable: bool = True
    max_stack: int = Field(default=99, ge=1)
    image_url: Optional[str] = None
    ipfs_image_url: Optional[str] = None


class ItemDefinitionUpdate(BaseModel):
    """None 인 필드는 변경하지 않음"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[ItemType] = None
    category: Optional[ItemCategory] = None
    base_stats: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    is_stackable: Optional[bool] = None
    max_stack: Optional[int] = Field(default=None, ge=1)
    image_url: Optional[str] = None
    ipfs_image_url: Optional[str] = None


class ItemDefinitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: ItemType
    category: ItemCategory
    base_stats: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    is_stackable: bool
    max_stack: int
    image_url: Optional[str] = None
    ipfs_image_url: Optional[str] = None


class EquipItemCreate(BaseModel):
    profile_id: int
    item_def_id: int
    enhancement_data: Optional[dict[str, Any]] = None


class EquipItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    profile_id: Optional[int] = None
    item_def_id: int
    enhancement_data: Optional[dict[str, Any]] = None
    location_id: int
    nft_id: Optional[str] = None


class LocationUpdateRequest(BaseModel):
    """장비 위치 변경 (1=인벤토리, 2=장착, 3=창고)"""

    location_id: int
    profile_id: Optional[int] = None


class ConsumableRequest(BaseModel):
    profile_id: int
    item_def_id: int
    quantity: int = Field(..., ge=1)


class ConsumableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: int
    item_def_id: int
    quantity: int


# === Profiles ===


class ProfileCreateRequest(BaseModel):
    user_id: int
    profile_name: str = Field(..., min_length=1, max_length=50)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    profile_name: str
    level: int
    experience: int
    gold: int
    equipped_items: dict[str, int] = {}
    skill_info: dict[str, int] = {}
    version: int
    created_at: datetime
    updated_at: datetime


class ProfileUpdateRequest(BaseModel):
    """부분 갱신. version 을 보내면 불일치 시 409."""

    profile_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    level: Optional[int] = None
    experience: Optional[int] = None
    gold: Optional[int] = None
    equipped_items: Optional[dict[str, int]] = None
    skill_info: Optional[dict[str, int]] = None
    version: Optional[int] = None


class ProfileSyncRequest(ProfileUpdateRequest):
    """profile_id 가 없으면 user_id + profile_name 으로 신규 생성"""

    profile_id: Optional[int] = None
    user_id: Optional[int] = None


class GoldUpdateRequest(BaseModel):
    profile_id: int
    amount: int  # 양수: 증가, 음수: 감소


class GoldUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: int
    gold: int
    delta: int
    updated_at: datetime


class ExperienceUpdateRequest(BaseModel):
    profile_id: int
    amount: int = Field(..., gt=0, le=MAX_EXPERIENCE_GAIN)


class ExperienceUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: int
    level: int
    experience: int
    delta: int
    updated_at: datetime


class EquipmentSlotRequest(BaseModel):
    profile_id: int
    slot: str = Field(..., min_length=1, max_length=30)
    item_id: Optional[int] = None  # None 이면 해제


class EquipmentUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: int
    slot: str
    item_id: Optional[int] = None
    previous_item_id: Optional[int] = None
    updated_at: datetime


# === NFT ===


class NftMintRequest(BaseModel):
    user_id: int
    profile_id: int
    equip_item_id: int


class NftMintResponse(BaseModel):
    success: bool
    error_message: Optional[str] = None
    nft_id: Optional[str] = None


class NftBurnRequest(BaseModel):
    user_address: str
    token_id: str
    contract_address: Optional[str] = None


class NftTransferRequest(BaseModel):
    user_id: int
    user_equip_item_id: int
    to_user_id: int


class NftLockRequest(BaseModel):
    wallet_address: str
    nft_id: str


class NftUnlockRequest(BaseModel):
    user_id: int
    nft_id: str


class NftResultResponse(BaseModel):
    """burn / transfer / unlock 공통 응답"""

    success: bool
    error_message: Optional[str] = None
    tx_hash: Optional[str] = None


class NftLockResponse(BaseModel):
    success: bool
    error_message: Optional[str] = None
    nft_id: Optional[str] = None
    tx_hash: Optional[str] = None
    vault_address: Optional[str] = None
    message: Optional[str] = None


class ItemData(BaseModel):
    item_def_id: int
    enhancement_data: Optional[dict[str, Any]] = None


class NftListResponse(BaseModel):
    success: bool
    error_message: Optional[str] = None
    items: list[ItemData] = []


# === Market ===


class CreateSellOrderRequest(BaseModel):
    seller: str = Field(..., min_length=1)
    nft_contract: str = Field(..., min_length=1)
    token_id: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1, description="wei 단위 정수 문자열")
    currency: str = Field(..., min_length=1)
    nonce: int
    deadline: int = Field(..., description="unix seconds")
    signature: str = Field(..., min_length=1)


class SellOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: str
    seller: str
    nft_contract: str
    token_id: str
    price: str
    currency: str
    nonce: int
    deadline: int
    signature: str
    status: OrderStatus
    buyer: Optional[str] = None
    matched_at: Optional[int] = None
    locked_by: Optional[str] = None
    locked_at: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class SellOrderWithItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sell_order: SellOrderResponse
    equip_item: Optional[EquipItemResponse] = None
    item_definition: Optional[ItemDefinitionResponse] = None


class UpdateOrderStatusRequest(BaseModel):
    status: str
    buyer: Optional[str] = None
    matched_at: Optional[int] = None


class BuyerRequest(BaseModel):
    """lock / confirm / failure 요청"""

    buyer_address: str


class MarketStatsResponse(BaseModel):
    total_sell_orders: int
    total_purchase_orders: int
    total_volume: str
    average_price: str


# === Game events (UE5 wire format, camelCase) ===


class ChatRecord(BaseModel):
    speaker: Optional[str] = None  # "player" 또는 "npc"
    message: Optional[str] = None
    timestamp: Optional[str] = None


class Ue5NpcRequest(BaseModel):
    """UE5 NPC 대화 요청"""

    model_config = ConfigDict(extra="allow")

    npcId: int
    profileId: Optional[int] = None
    chatType: Optional[str] = None
    currentPlayerMessage: Optional[ChatRecord] = None
    previousChatHistory: Optional[list[ChatRecord]] = None
    playerDescription: Optional[dict[str, Any]] = None
    previousConversationSummary: Optional[str] = None
    apiKey: Optional[str] = None
