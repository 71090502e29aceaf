"""아이템 Service: 아이템 정의, 장비/소비 아이템 보유 관리"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from toremain.core.exceptions import ConflictError, NotFoundError, ValidationError
from toremain.core.logging import get_logger
from toremain.db.models import (
    ItemDefinition,
    ItemLocation,
    ItemType,
    UserConsumableItem,
    UserEquipItem,
    UserGameProfile,
)

logger = get_logger(__name__)

DEFINITION_FIELDS = (
    "name",
    "type",
    "category",
    "base_stats",
    "description",
    "is_stackable",
    "max_stack",
    "image_url",
    "ipfs_image_url",
)


class ItemService:
    """아이템 정의 CRUD + 프로필별 보유 아이템"""

    def __init__(self, db: Session):
        self._db = db

    # === 아이템 정의 ===

    def create_definition(self, **fields: Any) -> ItemDefinition:
        name = fields.get("name")
        if not name:
            raise ValidationError("아이템 이름은 필수입니다.")
        if self._db.query(ItemDefinition).filter(ItemDefinition.name == name).first():
            raise ConflictError(f"이미 존재하는 아이템 이름입니다: {name}")

        definition = ItemDefinition(
            **{k: v for k, v in fields.items() if k in DEFINITION_FIELDS}
        )
        self._db.add(definition)
        self._db.commit()
        self._db.refresh(definition)
        logger.info("Item definition created: %s (id=%d)", name, definition.id)
        return definition

    def get_definition(self, item_def_id: int) -> ItemDefinition:
        definition = self._db.get(ItemDefinition, item_def_id)
        if definition is None:
            raise NotFoundError(f"Item definition not found: {item_def_id}")
        return definition

    def list_definitions(self, item_type: Optional[ItemType] = None) -> list[ItemDefinition]:
        query = self._db.query(ItemDefinition)
        if item_type is not None:
            query = query.filter(ItemDefinition.type == item_type)
        return query.order_by(ItemDefinition.id).all()

    def update_definition(self, item_def_id: int, **fields: Any) -> ItemDefinition:
        """None 이 아닌 필드만 반영"""
        definition = self.get_definition(item_def_id)
        new_name = fields.get("name")
        if new_name and new_name != definition.name:
            dup = (
                self._db.query(ItemDefinition)
                .filter(ItemDefinition.name == new_name)
                .first()
            )
            if dup is not None:
                raise ConflictError(f"이미 존재하는 아이템 이름입니다: {new_name}")

        for key, value in fields.items():
            if key in DEFINITION_FIELDS and value is not None:
                setattr(definition, key, value)
        self._db.commit()
        self._db.refresh(definition)
        return definition

    def delete_definition(self, item_def_id: int) -> None:
        definition = self.get_definition(item_def_id)
        in_use = (
            self._db.query(UserEquipItem)
            .filter(UserEquipItem.item_def_id == item_def_id)
            .first()
            or self._db.query(UserConsumableItem)
            .filter(UserConsumableItem.item_def_id == item_def_id)
            .first()
        )
        if in_use is not None:
            raise ConflictError("보유 중인 아이템이 있어 정의를 삭제할 수 없습니다.")
        self._db.delete(definition)
        self._db.commit()

    # === 장비 아이템 ===

    def add_equip_item(
        self,
        profile_id: int,
        item_def_id: int,
        enhancement_data: Optional[dict[str, Any]] = None,
    ) -> UserEquipItem:
        profile = self._get_profile(profile_id)
        definition = self.get_definition(item_def_id)
        if definition.type != ItemType.EQUIPMENT:
            raise ValidationError(f"장비 아이템이 아닙니다: {definition.name}")

        item = UserEquipItem(
            user_id=profile.user_id,
            profile_id=profile.id,
            item_def_id=definition.id,
            enhancement_data=enhancement_data or {},
            location_id=ItemLocation.INVENTORY,
        )
        self._db.add(item)
        self._db.commit()
        self._db.refresh(item)
        logger.info(
            "Equip item added: id=%d def=%d profile=%d", item.id, item_def_id, profile_id
        )
        return item

    def get_equip_item(self, equip_item_id: int) -> UserEquipItem:
        item = self._db.get(UserEquipItem, equip_item_id)
        if item is None:
            raise NotFoundError(f"Equip item not found: {equip_item_id}")
        return item

    def list_equip_items_by_profile(self, profile_id: int) -> list[UserEquipItem]:
        return (
            self._db.query(UserEquipItem)
            .filter(UserEquipItem.profile_id == profile_id)
            .order_by(UserEquipItem.id)
            .all()
        )

    def list_equip_items_by_user(self, user_id: int) -> list[UserEquipItem]:
        return (
            self._db.query(UserEquipItem)
            .filter(UserEquipItem.user_id == user_id)
            .order_by(UserEquipItem.id)
            .all()
        )

    def update_location(
        self,
        equip_item_id: int,
        location_id: int,
        profile_id: Optional[int] = None,
    ) -> UserEquipItem:
        """게임 내 위치 변경. 온체인/vault 위치는 NFT 흐름으로만 바뀐다."""
        try:
            location = ItemLocation(location_id)
        except ValueError as e:
            raise ValidationError(f"Invalid location: {location_id}") from e
        if location in (ItemLocation.ONCHAIN, ItemLocation.VAULT):
            raise ValidationError("온체인 위치는 직접 변경할 수 없습니다.")

        item = self.get_equip_item(equip_item_id)
        if item.nft_id is not None:
            raise ConflictError("NFT화된 아이템의 위치는 변경할 수 없습니다.")

        target_id = item.profile_id
        if profile_id is not None:
            profile = self._get_profile(profile_id)
            if profile.user_id != item.user_id:
                raise ValidationError("다른 사용자의 프로필로 옮길 수 없습니다.")
            target_id = profile.id

        # 장착 해제 또는 다른 프로필로 이동하면 기존 슬롯을 비운다
        if location != ItemLocation.EQUIPPED or target_id != item.profile_id:
            self._release_slots(item)
        item.profile_id = target_id
        item.location_id = location
        self._db.commit()
        self._db.refresh(item)
        return item

    def delete_equip_item(self, equip_item_id: int) -> None:
        item = self.get_equip_item(equip_item_id)
        if item.nft_id is not None:
            raise ConflictError(
                "NFT화된 아이템은 삭제할 수 없습니다. 먼저 burn 하세요.",
                details={"nft_id": item.nft_id},
            )
        self._release_slots(item)
        self._db.delete(item)
        self._db.commit()
        logger.info("Equip item deleted: id=%d", equip_item_id)

    # === 소비 아이템 ===

    def add_consumable(
        self, profile_id: int, item_def_id: int, quantity: int
    ) -> UserConsumableItem:
        """수량 추가 (없으면 생성). max_stack 초과 불가."""
        if quantity <= 0:
            raise ValidationError("수량은 1 이상이어야 합니다.")
        self._get_profile(profile_id)
        definition = self.get_definition(item_def_id)
        if definition.type != ItemType.CONSUMABLE:
            raise ValidationError(f"소비 아이템이 아닙니다: {definition.name}")

        row = self._db.get(UserConsumableItem, (profile_id, item_def_id))
        current = row.quantity if row is not None else 0
        limit = definition.max_stack if definition.is_stackable else 1
        if current + quantity > limit:
            raise ValidationError(
                f"최대 보유 수량 초과: {current} + {quantity} > {limit}",
                details={"current": current, "max_stack": limit},
            )

        if row is None:
            row = UserConsumableItem(
                profile_id=profile_id, item_def_id=item_def_id, quantity=quantity
            )
            self._db.add(row)
        else:
            row.quantity = current + quantity
        self._db.commit()
        self._db.refresh(row)
        return row

    def consume(
        self, profile_id: int, item_def_id: int, quantity: int
    ) -> Optional[UserConsumableItem]:
        """수량 차감. 0 이 되면 행 삭제 후 None 반환."""
        if quantity <= 0:
            raise ValidationError("수량은 1 이상이어야 합니다.")
        row = self._db.get(UserConsumableItem, (profile_id, item_def_id))
        if row is None or row.quantity < quantity:
            have = row.quantity if row is not None else 0
            raise ValidationError(
                f"수량 부족: 보유 {have}, 요청 {quantity}",
                details={"current": have},
            )

        row.quantity -= quantity
        if row.quantity == 0:
            self._db.delete(row)
            self._db.commit()
            return None
        self._db.commit()
        self._db.refresh(row)
        return row

    def list_consumables(self, profile_id: int) -> list[UserConsumableItem]:
        return (
            self._db.query(UserConsumableItem)
            .filter(UserConsumableItem.profile_id == profile_id)
            .order_by(UserConsumableItem.item_def_id)
            .all()
        )

    # === 내부 ===

    def _get_profile(self, profile_id: int) -> UserGameProfile:
        profile = self._db.get(UserGameProfile, profile_id)
        if profile is None:
            raise NotFoundError(f"Profile not found: {profile_id}")
        return profile

    def _release_slots(self, item: UserEquipItem) -> None:
        if item.profile_id is None:
            return
        profile = self._db.get(UserGameProfile, item.profile_id)
        if profile is not None and profile.unequip(item.id):
            logger.info("Equip item %d unequipped from profile %d", item.id, profile.id)
