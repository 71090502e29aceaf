"""NFT Service: 장비 아이템 NFT화와 블록체인 서버 연동

아이템 위치 흐름:
    INVENTORY/EQUIPPED --mint--> ONCHAIN --lock--> VAULT --unlock--> ONCHAIN
    ONCHAIN --burn--> STORAGE (nft_id 해제)

DB 변경은 블록체인 서버가 성공을 응답한 뒤에만 반영한다.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from toremain.core.event_bus import DomainEvent, EventBus
from toremain.core.event_types import EventTypes
from toremain.core.exceptions import (
    ContractError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from toremain.core.logging import get_logger
from toremain.core.security import same_address
from toremain.db.models import (
    ItemDefinition,
    ItemLocation,
    User,
    UserEquipItem,
    UserGameProfile,
)
from toremain.services.blockchain import BlockchainClient

logger = get_logger(__name__)

SOURCE = "nft_service"


@dataclass
class LockInfo:
    nft_id: str
    tx_hash: Optional[str]
    vault_address: Optional[str]
    message: Optional[str]


def build_item_metadata(
    definition: ItemDefinition, item: UserEquipItem
) -> dict[str, Any]:
    """NFT 메타데이터 표준 형식 (name, description, type, image, baseStats)"""
    metadata: dict[str, Any] = {
        "name": definition.name,
        "description": definition.description,
        "type": definition.type.value,
        "image": definition.ipfs_image_url or definition.available_image_url,
    }
    if definition.base_stats is not None:
        metadata["baseStats"] = definition.base_stats
    if item.enhancement_data:
        metadata["enhancementData"] = item.enhancement_data
    return metadata


class NftService:
    """mint / burn / list / lock / unlock / transfer"""

    def __init__(
        self,
        db: Session,
        event_bus: EventBus,
        client: BlockchainClient,
        contract_address: str,
        server_url: str,
    ):
        self._db = db
        self._bus = event_bus
        self._client = client
        self._contract_address = contract_address
        self._server_url = server_url.rstrip("/")

    @property
    def contract_address(self) -> str:
        return self._contract_address

    # === mint / burn ===

    def mint(self, user_id: int, profile_id: int, equip_item_id: int) -> str:
        """장비 아이템을 NFT화. 발급된 token id 반환."""
        user = self._get_user(user_id)
        wallet = self._require_wallet(user)

        profile = self._db.get(UserGameProfile, profile_id)
        if profile is None:
            raise NotFoundError(f"프로필을 찾을 수 없습니다: {profile_id}")
        if profile.user_id != user.id:
            raise PermissionDeniedError("해당 프로필에 대한 권한이 없습니다")

        item = self._get_item(equip_item_id)
        if item.profile_id != profile.id:
            raise PermissionDeniedError("해당 아이템에 대한 권한이 없습니다")
        if item.nft_id is not None:
            raise ValidationError("이미 NFT화된 아이템입니다")

        definition = self._get_definition(item.item_def_id)
        metadata = build_item_metadata(definition, item)
        metadata_url = f"{self._server_url}/api/metadata/{item.id}"

        result = self._client.mint(
            wallet_address=wallet,
            item_id=item.item_def_id,
            user_equip_item_id=item.id,
            item_data=metadata,
            metadata_url=metadata_url,
        )
        if not result.success:
            logger.warning("Mint failed: item=%d - %s", item.id, result.error_message)
            raise ContractError(result.error_message or "블록체인 서버 응답 오류")

        profile.unequip(item.id)
        item.nft_id = result.token_id
        item.location_id = ItemLocation.ONCHAIN
        item.profile_id = None
        item.user_id = user.id
        self._db.commit()

        logger.info("NFT minted: item=%d token=%s", item.id, result.token_id)
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.NFT_MINTED,
                data={"equip_item_id": item.id, "token_id": result.token_id},
                source=SOURCE,
            )
        )
        return result.token_id

    def burn(
        self,
        user_address: str,
        token_id: str,
        contract_address: Optional[str] = None,
    ) -> None:
        """NFT 소각. 실패 시 DB 는 변경하지 않는다."""
        result = self._client.burn(
            user_address, token_id, contract_address or self._contract_address
        )
        if not result.success:
            logger.warning("Burn failed: token=%s - %s", token_id, result.error_message)
            raise ContractError(result.error_message or "블록체인 서버 응답 오류")

        items = self._db.query(UserEquipItem).filter(UserEquipItem.nft_id == token_id).all()
        for item in items:
            item.nft_id = None
            item.location_id = ItemLocation.STORAGE
        self._db.commit()

        logger.info("NFT burned: token=%s (items=%d)", token_id, len(items))
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.NFT_BURNED,
                data={"token_id": token_id},
                source=SOURCE,
            )
        )

    # === 목록 / 동기화 ===

    def list_nfts(self, user_id: int) -> list[dict[str, Any]]:
        """지갑 보유 NFT 조회 + 소유권 동기화. [{item_def_id, enhancement_data}]"""
        user = self._get_user(user_id)
        wallet = self._require_wallet(user)

        result = self._client.list_nfts(wallet, self._contract_address)
        if not result.success:
            raise ContractError(result.error_message or "블록체인 서버 응답 오류")

        items = self.sync_ownership(user, result.nft_ids)
        return [
            {"item_def_id": item.item_def_id, "enhancement_data": item.enhancement_data}
            for item in items
        ]

    def sync_ownership(self, user: User, nft_ids: list[str]) -> list[UserEquipItem]:
        """체인상 소유자와 DB user_id 를 맞춘다. 알려진 아이템 목록 반환."""
        known: list[UserEquipItem] = []
        changed = False
        for nft_id in nft_ids:
            item = self._find_by_nft_id(nft_id)
            if item is None:
                logger.warning(
                    "NFT ID %s not found in database for wallet %s",
                    nft_id,
                    user.wallet_address,
                )
                continue
            if item.user_id != user.id:
                logger.info(
                    "NFT owner sync: token=%s user %d -> %d", nft_id, item.user_id, user.id
                )
                item.user_id = user.id
                changed = True
            known.append(item)
        if changed:
            self._db.commit()
        return known

    # === lock / unlock / transfer ===

    def lock(self, wallet_address: str, nft_id: str) -> LockInfo:
        """마켓 vault 로 NFT 잠금"""
        item = self._require_nft(nft_id)
        owner = self._get_user(item.user_id)
        if not same_address(owner.wallet_address, wallet_address):
            raise PermissionDeniedError("NFT 소유자가 아닙니다")
        if item.location_id != ItemLocation.ONCHAIN:
            raise ValidationError("지갑에 있는 NFT만 잠글 수 있습니다")

        result = self._client.lock(owner.wallet_address, nft_id, self._contract_address)
        if not result.success:
            raise ContractError(result.error, details=result.details)

        item.location_id = ItemLocation.VAULT
        self._db.commit()
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.NFT_LOCKED,
                data={"token_id": nft_id},
                source=SOURCE,
            )
        )
        return LockInfo(
            nft_id=nft_id,
            tx_hash=result.tx_hash,
            vault_address=result.vault_address,
            message=result.message,
        )

    def unlock(self, user_id: int, nft_id: str) -> Optional[str]:
        """vault 에서 지갑으로 반환. tx hash 반환."""
        user = self._get_user(user_id)
        wallet = self._require_wallet(user)
        item = self._require_nft(nft_id)
        if item.user_id != user.id:
            raise PermissionDeniedError("NFT 소유자가 아닙니다")
        if item.location_id != ItemLocation.VAULT:
            raise ValidationError("잠금 상태의 NFT가 아닙니다")

        result = self._client.unlock(wallet, nft_id, self._contract_address)
        if not result.success:
            raise ContractError(result.error_message or "블록체인 서버 응답 오류")

        item.location_id = ItemLocation.ONCHAIN
        self._db.commit()
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.NFT_UNLOCKED,
                data={"token_id": nft_id},
                source=SOURCE,
            )
        )
        return result.tx_hash

    def transfer(self, user_id: int, equip_item_id: int, to_user_id: int) -> Optional[str]:
        """다른 사용자 지갑으로 NFT 전송. tx hash 반환."""
        if user_id == to_user_id:
            raise ValidationError("자기 자신에게 전송할 수 없습니다")
        sender = self._get_user(user_id)
        from_wallet = self._require_wallet(sender)
        receiver = self._get_user(to_user_id)
        to_wallet = self._require_wallet(receiver)

        item = self._get_item(equip_item_id)
        if item.user_id != sender.id:
            raise PermissionDeniedError("해당 아이템에 대한 권한이 없습니다")
        if item.nft_id is None:
            raise ValidationError("NFT화되지 않은 아이템입니다")
        if item.location_id == ItemLocation.VAULT:
            raise ValidationError("잠금 상태의 NFT는 전송할 수 없습니다")

        token_id = item.nft_id
        result = self._client.transfer(
            from_wallet, to_wallet, token_id, self._contract_address
        )
        if not result.success:
            raise ContractError(result.error_message or "블록체인 서버 응답 오류")

        item.user_id = receiver.id
        self._db.commit()
        logger.info("NFT transferred: token=%s %d -> %d", token_id, sender.id, receiver.id)
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.NFT_TRANSFERRED,
                data={"token_id": token_id, "to_user_id": receiver.id},
                source=SOURCE,
            )
        )
        return result.tx_hash

    # === 메타데이터 ===

    def metadata(self, equip_item_id: int) -> dict[str, Any]:
        item = self._db.get(UserEquipItem, equip_item_id)
        if item is None or item.nft_id is None:
            raise NotFoundError(f"NFT metadata not found: {equip_item_id}")
        return build_item_metadata(self._get_definition(item.item_def_id), item)

    def user_nft_items(self, wallet_address: str) -> list[dict[str, Any]]:
        user = (
            self._db.query(User)
            .filter(func.lower(User.wallet_address) == wallet_address.lower())
            .first()
        )
        if user is None:
            return []
        items = (
            self._db.query(UserEquipItem)
            .filter(UserEquipItem.user_id == user.id, UserEquipItem.nft_id.isnot(None))
            .order_by(UserEquipItem.id)
            .all()
        )
        return [
            build_item_metadata(self._get_definition(item.item_def_id), item)
            for item in items
        ]

    # === 내부 ===

    def _get_user(self, user_id: int) -> User:
        user = self._db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"사용자를 찾을 수 없습니다: {user_id}")
        return user

    @staticmethod
    def _require_wallet(user: User) -> str:
        if not user.wallet_address:
            raise ValidationError("사용자의 지갑 주소가 설정되지 않았습니다")
        return user.wallet_address

    def _get_item(self, equip_item_id: int) -> UserEquipItem:
        item = self._db.get(UserEquipItem, equip_item_id)
        if item is None:
            raise NotFoundError(f"사용자 장비 아이템을 찾을 수 없습니다: {equip_item_id}")
        return item

    def _get_definition(self, item_def_id: int) -> ItemDefinition:
        definition = self._db.get(ItemDefinition, item_def_id)
        if definition is None:
            raise NotFoundError(f"아이템 정의를 찾을 수 없습니다: {item_def_id}")
        return definition

    def _find_by_nft_id(self, nft_id: str) -> Optional[UserEquipItem]:
        return self._db.query(UserEquipItem).filter(UserEquipItem.nft_id == nft_id).first()

    def _require_nft(self, nft_id: str) -> UserEquipItem:
        item = self._find_by_nft_id(nft_id)
        if item is None:
            raise NotFoundError(f"NFT not found: {nft_id}")
        return item
