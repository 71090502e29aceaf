"""마켓 Service: 오프체인 서명 판매 주문 조회와 상태 전이

매칭 엔진은 없다. 주문 상태는 외부(구매 클라이언트, 블록체인 서버)에서
호출하는 API 로만 바뀐다:

    ACTIVE --lock--> LOCKED --confirm--> COMPLETED
                     LOCKED --failure--> ACTIVE
    ACTIVE/LOCKED --cancel / nft burn / nft transfer--> CANCELLED
"""

import time
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from toremain.core.event_bus import DomainEvent, EventBus
from toremain.core.event_types import EventTypes
from toremain.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from toremain.core.logging import get_logger
from toremain.core.security import same_address
from toremain.db.models import ItemDefinition, NFTSellOrder, OrderStatus, UserEquipItem

logger = get_logger(__name__)

OPEN_STATUSES = (OrderStatus.ACTIVE, OrderStatus.LOCKED)
CLOSED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

EIP712_DOMAIN_TYPES = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]
SELL_ORDER_TYPES = [
    {"name": "seller", "type": "address"},
    {"name": "nftContract", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "price", "type": "uint256"},
    {"name": "currency", "type": "address"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]


@dataclass
class MarketDomain:
    """EIP-712 서명 도메인"""

    name: str
    version: str
    chain_id: int
    verifying_contract: Optional[str]


@dataclass
class SellOrderView:
    """판매 주문 + 연결된 장비 아이템/정의 (없으면 None)"""

    sell_order: NFTSellOrder
    equip_item: Optional[UserEquipItem]
    item_definition: Optional[ItemDefinition]


def _now_millis() -> int:
    return int(time.time() * 1000)


def parse_price(value: Any) -> Decimal:
    """wei 단위 정수 문자열 -> Decimal. 형식 오류는 ValidationError."""
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid price: {value}") from e
    if not price.is_finite() or price < 0 or price != price.to_integral_value():
        raise ValidationError(f"Invalid price: {value}")
    return price


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value.strip().upper())
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid order status: {value}") from e


def _format_decimal(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


class MarketService:
    """판매 주문 CRUD + 필터 조회 + 상태 전이"""

    def __init__(self, db: Session, event_bus: EventBus, domain: MarketDomain):
        self._db = db
        self._bus = event_bus
        self._domain = domain
        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        """EventBus 구독"""
        self._bus.subscribe(EventTypes.NFT_BURNED, self._on_token_gone)
        self._bus.subscribe(EventTypes.NFT_TRANSFERRED, self._on_token_gone)

    # === 생성 / 조회 ===

    def create_sell_order(
        self,
        seller: str,
        nft_contract: str,
        token_id: str,
        price: str,
        currency: str,
        nonce: int,
        deadline: int,
        signature: str,
    ) -> NFTSellOrder:
        parse_price(price)
        if deadline <= 0:
            raise ValidationError("deadline 은 양수여야 합니다.")
        if not signature:
            raise ValidationError("서명은 필수입니다.")

        open_order = (
            self._db.query(NFTSellOrder)
            .filter(
                NFTSellOrder.nft_contract == nft_contract,
                NFTSellOrder.token_id == token_id,
                NFTSellOrder.status.in_(OPEN_STATUSES),
            )
            .first()
        )
        if open_order is not None:
            raise ConflictError(
                "이미 판매 중인 NFT입니다.", details={"order_id": open_order.order_id}
            )

        order = NFTSellOrder(
            order_id=str(uuid.uuid4()),
            seller=seller,
            nft_contract=nft_contract,
            token_id=token_id,
            price=price.strip(),
            currency=currency,
            nonce=nonce,
            deadline=deadline,
            signature=signature,
            status=OrderStatus.ACTIVE,
        )
        self._db.add(order)
        self._db.commit()
        self._db.refresh(order)
        logger.info("Sell order created: %s (token=%s)", order.order_id, token_id)
        return order

    def get_sell_order(self, order_id: str) -> NFTSellOrder:
        order = (
            self._db.query(NFTSellOrder).filter(NFTSellOrder.order_id == order_id).first()
        )
        if order is None:
            raise NotFoundError(f"판매 주문을 찾을 수 없습니다: {order_id}")
        return order

    def active_sell_orders(self, status: Optional[str] = None) -> list[SellOrderView]:
        """status 별 주문 + 아이템 정보.

        "active", "all", 미지정, 알 수 없는 값은 ACTIVE+LOCKED 로 본다.
        """
        statuses: tuple[OrderStatus, ...] = OPEN_STATUSES
        if status and status.lower() not in ("active", "all"):
            try:
                statuses = (OrderStatus(status.upper()),)
            except ValueError:
                logger.debug("Unknown status filter '%s', using ACTIVE+LOCKED", status)

        rows = (
            self._db.query(NFTSellOrder, UserEquipItem, ItemDefinition)
            .outerjoin(UserEquipItem, UserEquipItem.nft_id == NFTSellOrder.token_id)
            .outerjoin(ItemDefinition, ItemDefinition.id == UserEquipItem.item_def_id)
            .filter(NFTSellOrder.status.in_(statuses))
            .order_by(NFTSellOrder.created_at.desc(), NFTSellOrder.id.desc())
            .all()
        )
        return [SellOrderView(order, item, definition) for order, item, definition in rows]

    def orders_by_seller(self, seller: str) -> list[NFTSellOrder]:
        return self._by_seller(seller)

    def active_orders_by_seller(self, seller: str) -> list[NFTSellOrder]:
        return self._by_seller(seller, OPEN_STATUSES)

    def completed_orders_by_seller(self, seller: str) -> list[NFTSellOrder]:
        return self._by_seller(seller, CLOSED_STATUSES)

    def order_stats_by_seller(self, seller: str) -> dict[str, int]:
        rows = (
            self._db.query(NFTSellOrder.status, func.count(NFTSellOrder.id))
            .filter(func.lower(NFTSellOrder.seller) == seller.lower())
            .group_by(NFTSellOrder.status)
            .all()
        )
        return {status.value: count for status, count in rows}

    def _by_seller(
        self, seller: str, statuses: Optional[tuple[OrderStatus, ...]] = None
    ) -> list[NFTSellOrder]:
        query = self._db.query(NFTSellOrder).filter(
            func.lower(NFTSellOrder.seller) == seller.lower()
        )
        if statuses is not None:
            query = query.filter(NFTSellOrder.status.in_(statuses))
        return query.order_by(NFTSellOrder.created_at.desc(), NFTSellOrder.id.desc()).all()

    # === 상태 전이 ===

    def update_status(
        self,
        order_id: str,
        status: str,
        buyer: Optional[str] = None,
        matched_at: Optional[int] = None,
    ) -> NFTSellOrder:
        new_status = parse_status(status)
        order = self.get_sell_order(order_id)
        order.status = new_status
        if buyer is not None:
            order.buyer = buyer
        if matched_at is not None:
            order.matched_at = matched_at
        self._db.commit()
        self._db.refresh(order)
        logger.info("Sell order %s status -> %s", order_id, new_status.value)
        return order

    def lock_order(self, order_id: str, buyer: str) -> NFTSellOrder:
        """구매 시작. ACTIVE 주문만 잠글 수 있다."""
        order = self.get_sell_order(order_id)
        if order.status != OrderStatus.ACTIVE:
            raise ConflictError("구매 가능한 상태의 주문이 아닙니다")
        if same_address(order.seller, buyer):
            raise ValidationError("자신의 주문은 구매할 수 없습니다")
        if order.deadline < int(time.time()):
            raise ValidationError("만료된 주문입니다")

        order.status = OrderStatus.LOCKED
        order.locked_by = buyer
        order.locked_at = _now_millis()
        self._db.commit()
        self._db.refresh(order)
        return order

    def cancel(self, order_id: str, user_address: str) -> NFTSellOrder:
        order = self.get_sell_order(order_id)
        if not same_address(order.seller, user_address):
            raise PermissionDeniedError("주문을 취소할 권한이 없습니다")
        if order.status in CLOSED_STATUSES:
            raise ConflictError("이미 종료된 주문입니다")
        order.status = OrderStatus.CANCELLED
        order.locked_by = None
        order.locked_at = None
        self._db.commit()
        self._db.refresh(order)
        return order

    def confirm_purchase(self, order_id: str, buyer_address: str) -> NFTSellOrder:
        order = self._get_locked_by(order_id, buyer_address)
        order.status = OrderStatus.COMPLETED
        order.buyer = buyer_address
        order.matched_at = _now_millis()
        order.locked_by = None
        order.locked_at = None
        self._db.commit()
        self._db.refresh(order)
        logger.info("Sell order %s completed (buyer=%s)", order_id, buyer_address)
        return order

    def report_failure(self, order_id: str, buyer_address: str) -> NFTSellOrder:
        order = self._get_locked_by(order_id, buyer_address)
        order.status = OrderStatus.ACTIVE
        order.locked_by = None
        order.locked_at = None
        self._db.commit()
        self._db.refresh(order)
        logger.info("Sell order %s reopened after failed transaction", order_id)
        return order

    def _get_locked_by(self, order_id: str, buyer_address: str) -> NFTSellOrder:
        order = self.get_sell_order(order_id)
        if order.status != OrderStatus.LOCKED:
            raise ValidationError("주문이 락 상태가 아닙니다")
        if not same_address(order.locked_by, buyer_address):
            raise ValidationError("잘못된 구매자입니다")
        return order

    def expire_orders(self, now: Optional[int] = None) -> int:
        """deadline(초)이 지난 ACTIVE 주문을 CANCELLED 로. 처리 건수 반환."""
        current = int(time.time()) if now is None else now
        expired = (
            self._db.query(NFTSellOrder)
            .filter(
                NFTSellOrder.status == OrderStatus.ACTIVE,
                NFTSellOrder.deadline < current,
            )
            .all()
        )
        for order in expired:
            order.status = OrderStatus.CANCELLED
        if expired:
            self._db.commit()
            logger.info("Expired %d sell orders", len(expired))
        return len(expired)

    # === 서명 데이터 ===

    def offchain_signature_data(self, order_id: str) -> dict[str, Any]:
        order = self.get_sell_order(order_id)
        return {
            "sell_order": order,
            "offchain_signature": order.signature,
            "domain": {
                "name": self._domain.name,
                "version": self._domain.version,
                "chainId": self._domain.chain_id,
                "verifyingContract": self._domain.verifying_contract,
            },
            "types": {
                "EIP712Domain": EIP712_DOMAIN_TYPES,
                "SellOrder": SELL_ORDER_TYPES,
            },
            "message": {
                "seller": order.seller,
                "nftContract": order.nft_contract,
                "tokenId": order.token_id,
                "price": order.price,
                "currency": order.currency,
                "nonce": order.nonce,
                "deadline": order.deadline,
            },
        }

    # === 통계 / 검색 ===

    def market_stats(self) -> dict[str, Any]:
        active = (
            self._db.query(func.count(NFTSellOrder.id))
            .filter(NFTSellOrder.status == OrderStatus.ACTIVE)
            .scalar()
        )
        # price 는 uint256 범위라 DB 집계 대신 Decimal 로 합산
        prices = []
        completed = (
            self._db.query(NFTSellOrder.order_id, NFTSellOrder.price)
            .filter(NFTSellOrder.status == OrderStatus.COMPLETED)
            .all()
        )
        for order_id, raw in completed:
            try:
                prices.append(parse_price(raw))
            except ValidationError:
                logger.warning("Skipping order with bad price: %s", order_id)
        # uint256 은 78자리까지 가능하므로 정밀도를 넉넉히
        with localcontext() as ctx:
            ctx.prec = 100
            total = sum(prices, Decimal(0))
            average = total / len(prices) if prices else Decimal(0)
        return {
            "total_sell_orders": active or 0,
            "total_purchase_orders": 0,
            "total_volume": _format_decimal(total),
            "average_price": _format_decimal(average),
        }

    def popular(self, limit: int = 10) -> list[NFTSellOrder]:
        """최근 등록된 ACTIVE 주문 순"""
        if limit <= 0:
            return []
        return (
            self._db.query(NFTSellOrder)
            .filter(NFTSellOrder.status == OrderStatus.ACTIVE)
            .order_by(NFTSellOrder.created_at.desc(), NFTSellOrder.id.desc())
            .limit(limit)
            .all()
        )

    def search(
        self,
        query: str,
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> list[NFTSellOrder]:
        pattern = f"%{query}%"
        results = (
            self._db.query(NFTSellOrder)
            .filter(
                NFTSellOrder.status == OrderStatus.ACTIVE,
                NFTSellOrder.token_id.like(pattern)
                | NFTSellOrder.nft_contract.like(pattern),
            )
            .order_by(NFTSellOrder.created_at.desc(), NFTSellOrder.id.desc())
            .all()
        )
        if min_price is not None and max_price is not None:
            results = self._filter_price(results, parse_price(min_price), parse_price(max_price))
        if currency:
            results = [o for o in results if o.currency.lower() == currency.lower()]
        return results

    def price_range(self, min_price: str, max_price: str) -> list[NFTSellOrder]:
        low, high = parse_price(min_price), parse_price(max_price)
        if low > high:
            raise ValidationError("min 은 max 보다 클 수 없습니다")
        orders = (
            self._db.query(NFTSellOrder)
            .filter(NFTSellOrder.status == OrderStatus.ACTIVE)
            .order_by(NFTSellOrder.created_at.desc(), NFTSellOrder.id.desc())
            .all()
        )
        return self._filter_price(orders, low, high)

    @staticmethod
    def _filter_price(
        orders: list[NFTSellOrder], low: Decimal, high: Decimal
    ) -> list[NFTSellOrder]:
        matched = []
        for order in orders:
            try:
                price = parse_price(order.price)
            except ValidationError:
                logger.warning("Skipping order with bad price: %s", order.order_id)
                continue
            if low <= price <= high:
                matched.append(order)
        return matched

    # === 이벤트 핸들러 ===

    def _on_token_gone(self, event: DomainEvent) -> None:
        """소각/전송된 NFT 의 열린 주문 취소"""
        token_id = event.token_id
        if token_id is None:
            return
        orders = (
            self._db.query(NFTSellOrder)
            .filter(
                NFTSellOrder.token_id == token_id,
                NFTSellOrder.status.in_(OPEN_STATUSES),
            )
            .all()
        )
        for order in orders:
            order.status = OrderStatus.CANCELLED
            order.locked_by = None
            order.locked_at = None
        if orders:
            self._db.commit()
            logger.info(
                "Cancelled %d open orders for token %s (%s)",
                len(orders),
                token_id,
                event.event_type,
            )
