"""SQLAlchemy declarative models."""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


# ── enums ─────────────────────────────────────────────────


class ItemType(str, enum.Enum):
    CONSUMABLE = "CONSUMABLE"
    EQUIPMENT = "EQUIPMENT"
    ETC = "ETC"


class ItemCategory(str, enum.Enum):
    POTION = "POTION"
    WEAPON = "WEAPON"
    ARMOR = "ARMOR"


class ItemLocation(enum.IntEnum):
    """장비 아이템 위치 코드"""

    ONCHAIN = 0  # NFT화되어 지갑에 있음
    INVENTORY = 1
    EQUIPPED = 2
    STORAGE = 3
    VAULT = 4  # 마켓 vault에 lock됨


class OrderStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"  # 구매 진행 중
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# ── accounts ──────────────────────────────────────────────


class User(Base):
    """ORM model for user accounts."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(100), nullable=False)  # bcrypt hash
    wallet_address: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class RevokedToken(Base):
    """로그아웃으로 무효화된 refresh token"""

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    revoked_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ── items ─────────────────────────────────────────────────


class ItemDefinition(Base):
    """ORM model for item definitions."""

    __tablename__ = "item_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[ItemType] = mapped_column(
        Enum(ItemType, native_enum=False, length=20), nullable=False
    )
    category: Mapped[ItemCategory] = mapped_column(
        Enum(ItemCategory, native_enum=False, length=20), nullable=False
    )
    base_stats: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_stackable: Mapped[bool] = mapped_column(Boolean, default=True)
    max_stack: Mapped[int] = mapped_column(Integer, default=99)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ipfs_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def available_image_url(self) -> str | None:
        """image_url 우선, 없으면 ipfs_image_url"""
        if self.image_url and self.image_url.strip():
            return self.image_url
        if self.ipfs_image_url and self.ipfs_image_url.strip():
            return self.ipfs_image_url
        return None


class UserEquipItem(Base):
    """장비 아이템 인스턴스 (강화 정보 + NFT 연결)"""

    __tablename__ = "user_equip_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    # NFT화되면 NULL (지갑 소유로 이동)
    profile_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_game_profiles.id"), nullable=True
    )
    item_def_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("item_definitions.id"), nullable=False
    )
    enhancement_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    location_id: Mapped[int] = mapped_column(
        Integer, nullable=False, default=ItemLocation.INVENTORY
    )
    nft_id: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)

    __table_args__ = (
        Index("idx_equip_profile", "profile_id"),
        Index("idx_equip_user", "user_id"),
    )


class UserConsumableItem(Base):
    """소비 아이템 보유 수량 (profile_id + item_def_id 복합키)"""

    __tablename__ = "user_consumable_items"

    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_game_profiles.id"), primary_key=True
    )
    item_def_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("item_definitions.id"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ── profiles ──────────────────────────────────────────────


class UserGameProfile(Base):
    """캐릭터 프로필. version 컬럼으로 낙관적 잠금."""

    __tablename__ = "user_game_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    profile_name: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 슬롯명 -> UserEquipItem.id
    equipped_items: Mapped[dict[str, int]] = mapped_column(JSON, default=dict)
    # 스킬명 -> 레벨
    skill_info: Mapped[dict[str, int]] = mapped_column(JSON, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (Index("idx_profile_user", "user_id"),)

    def unequip(self, equip_item_id: int) -> bool:
        """해당 아이템이 장착된 슬롯을 모두 비운다. 변경이 있으면 True."""
        equipped = dict(self.equipped_items or {})
        remaining = {slot: i for slot, i in equipped.items() if i != equip_item_id}
        if remaining == equipped:
            return False
        # JSON 컬럼은 새 dict 를 대입해야 변경이 추적된다
        self.equipped_items = remaining
        return True


class Npc(Base):
    """ORM model for NPCs referenced by the AI chat gateway."""

    __tablename__ = "npcs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    npc_info: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


# ── market ────────────────────────────────────────────────


class NFTSellOrder(Base):
    """오프체인 서명 기반 NFT 판매 주문"""

    __tablename__ = "nft_sell_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    seller: Mapped[str] = mapped_column(String(64), nullable=False)
    nft_contract: Mapped[str] = mapped_column(String(64), nullable=False)
    token_id: Mapped[str] = mapped_column(String(100), nullable=False)
    # wei 단위 정수 문자열
    price: Mapped[str] = mapped_column(String(78), nullable=False)
    currency: Mapped[str] = mapped_column(String(20), nullable=False)
    nonce: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deadline: Mapped[int] = mapped_column(BigInteger, nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.ACTIVE,
    )
    buyer: Mapped[str | None] = mapped_column(String(64), nullable=True)
    matched_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    locked_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_order_seller", "seller"),
        Index("idx_order_status", "status"),
        Index("idx_order_token", "token_id"),
    )
