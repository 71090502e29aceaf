"""프로필 Service: 캐릭터 스탯, 골드, 경험치, 장비 슬롯

프로필 행은 version 컬럼으로 낙관적 잠금된다. 클라이언트가 알고 있는
version 을 함께 보내면 불일치 시 ConflictError, 동시 커밋 충돌은
SQLAlchemy StaleDataError 로 올라가 API 에서 409 로 변환된다.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from toremain.core.exceptions import ConflictError, NotFoundError, ValidationError
from toremain.core.logging import get_logger
from toremain.db.models import ItemLocation, User, UserEquipItem, UserGameProfile

logger = get_logger(__name__)

LEVEL_EXP_STEP = 100  # 레벨 N -> N+1 에 필요한 누적 경험치 = N * LEVEL_EXP_STEP
MAX_LEVEL = 999
MAX_EXPERIENCE_GAIN = 1_000_000  # 요청 1회당 상한

UPDATABLE_FIELDS = ("profile_name", "level", "experience", "gold", "equipped_items", "skill_info")


def level_for_experience(experience: int, current_level: int = 1) -> int:
    """누적 경험치로 도달하는 레벨. 레벨업은 MAX_LEVEL 까지, 기존 레벨보다 낮아지지 않는다."""
    reached = experience // LEVEL_EXP_STEP + 1
    return max(current_level, min(MAX_LEVEL, reached))


@dataclass
class GoldUpdate:
    profile_id: int
    gold: int
    delta: int
    updated_at: datetime


@dataclass
class ExperienceUpdate:
    profile_id: int
    level: int
    experience: int
    delta: int
    updated_at: datetime


@dataclass
class EquipmentUpdate:
    profile_id: int
    slot: str
    item_id: Optional[int]
    previous_item_id: Optional[int]
    updated_at: datetime


class ProfileService:
    """게임 프로필 CRUD + 스탯 변경"""

    def __init__(self, db: Session):
        self._db = db

    def create(self, user_id: int, profile_name: str) -> UserGameProfile:
        if self._db.get(User, user_id) is None:
            raise NotFoundError(f"User not found: {user_id}")
        if not profile_name or not profile_name.strip():
            raise ValidationError("프로필 이름은 필수입니다.")

        profile = UserGameProfile(
            user_id=user_id,
            profile_name=profile_name.strip(),
            level=1,
            experience=0,
            gold=0,
            equipped_items={},
            skill_info={},
        )
        self._db.add(profile)
        self._db.commit()
        self._db.refresh(profile)
        logger.info("Profile created: id=%d user=%d", profile.id, user_id)
        return profile

    def get(self, profile_id: int) -> UserGameProfile:
        profile = self._db.get(UserGameProfile, profile_id)
        if profile is None:
            raise NotFoundError(f"Profile not found: {profile_id}")
        return profile

    def list_by_user(self, user_id: int) -> list[UserGameProfile]:
        return (
            self._db.query(UserGameProfile)
            .filter(UserGameProfile.user_id == user_id)
            .order_by(UserGameProfile.id)
            .all()
        )

    def update(
        self,
        profile_id: int,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> UserGameProfile:
        """부분 갱신. None 값은 무시."""
        profile = self.get(profile_id)
        self._check_version(profile, expected_version)

        if fields.get("level") is not None and fields["level"] < 1:
            raise ValidationError("레벨은 1 이상이어야 합니다.")
        if fields.get("gold") is not None and fields["gold"] < 0:
            raise ValidationError("골드는 음수가 될 수 없습니다.")
        if fields.get("experience") is not None and fields["experience"] < 0:
            raise ValidationError("경험치는 음수가 될 수 없습니다.")

        for key in UPDATABLE_FIELDS:
            value = fields.get(key)
            if value is not None:
                # JSON 컬럼은 새 객체를 대입해야 변경이 감지된다
                setattr(profile, key, dict(value) if isinstance(value, dict) else value)
        self._db.commit()
        self._db.refresh(profile)
        return profile

    def sync(self, data: dict[str, Any]) -> UserGameProfile:
        """profile_id 가 없으면 생성, 있으면 갱신."""
        profile_id = data.get("profile_id")
        if profile_id is None:
            user_id = data.get("user_id")
            if user_id is None:
                raise ValidationError("신규 프로필 생성에는 user_id 가 필요합니다.")
            profile = self.create(user_id, data.get("profile_name") or "")
            profile_id = profile.id
        return self.update(profile_id, data, data.get("version"))

    def update_gold(self, profile_id: int, amount: int) -> GoldUpdate:
        """골드 증감. 결과가 음수면 ValidationError."""
        profile = self.get(profile_id)
        new_gold = profile.gold + amount
        if new_gold < 0:
            raise ValidationError(
                f"골드 부족: 보유 {profile.gold}, 변경 {amount}",
                details={"gold": profile.gold},
            )
        profile.gold = new_gold
        self._db.commit()
        self._db.refresh(profile)
        return GoldUpdate(
            profile_id=profile.id,
            gold=profile.gold,
            delta=amount,
            updated_at=profile.updated_at,
        )

    def add_experience(self, profile_id: int, amount: int) -> ExperienceUpdate:
        if amount <= 0:
            raise ValidationError("경험치는 양수만 추가할 수 있습니다.")
        if amount > MAX_EXPERIENCE_GAIN:
            raise ValidationError(
                "한 번에 추가할 수 있는 경험치를 초과했습니다.",
                details={"max": MAX_EXPERIENCE_GAIN},
            )
        profile = self.get(profile_id)
        profile.experience += amount
        level = level_for_experience(profile.experience, profile.level)
        if level != profile.level:
            logger.info("Profile %d level up: %d -> %d", profile.id, profile.level, level)
            profile.level = level

        self._db.commit()
        self._db.refresh(profile)
        return ExperienceUpdate(
            profile_id=profile.id,
            level=profile.level,
            experience=profile.experience,
            delta=amount,
            updated_at=profile.updated_at,
        )

    def set_equipment(
        self, profile_id: int, slot: str, item_id: Optional[int]
    ) -> EquipmentUpdate:
        """슬롯에 장비 장착 (item_id=None 이면 해제). 이전 아이템은 인벤토리로."""
        if not slot:
            raise ValidationError("슬롯명은 필수입니다.")
        profile = self.get(profile_id)
        equipped = dict(profile.equipped_items or {})
        previous_id = equipped.get(slot)

        if item_id is not None:
            item = self._db.get(UserEquipItem, item_id)
            if item is None:
                raise NotFoundError(f"Equip item not found: {item_id}")
            if item.profile_id != profile.id:
                raise ValidationError("이 프로필이 소유한 아이템이 아닙니다.")
            if item.nft_id is not None or item.location_id in (
                ItemLocation.ONCHAIN,
                ItemLocation.VAULT,
            ):
                raise ValidationError("NFT화된 아이템은 장착할 수 없습니다.")

            # 다른 슬롯에 이미 장착돼 있으면 그 슬롯은 비운다
            for other_slot, other_id in list(equipped.items()):
                if other_id == item_id and other_slot != slot:
                    del equipped[other_slot]
            equipped[slot] = item_id
            item.location_id = ItemLocation.EQUIPPED
        else:
            equipped.pop(slot, None)

        if previous_id is not None and previous_id != item_id:
            previous = self._db.get(UserEquipItem, previous_id)
            if previous is not None and previous.location_id == ItemLocation.EQUIPPED:
                previous.location_id = ItemLocation.INVENTORY

        profile.equipped_items = equipped
        self._db.commit()
        self._db.refresh(profile)
        return EquipmentUpdate(
            profile_id=profile.id,
            slot=slot,
            item_id=item_id,
            previous_item_id=previous_id,
            updated_at=profile.updated_at,
        )

    @staticmethod
    def _check_version(profile: UserGameProfile, expected: Optional[int]) -> None:
        if expected is not None and expected != profile.version:
            raise ConflictError(
                "프로필이 다른 요청에 의해 변경되었습니다.",
                details={"expected": expected, "actual": profile.version},
            )
