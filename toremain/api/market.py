"""Market API endpoints: sell orders and market queries.

조회는 공개, 주문 생성과 상태 변경은 인증된 지갑 소유자만 가능하다.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from toremain.api.deps import ensure_wallet, get_market_service, require_user
from toremain.api.schemas import (
    BuyerRequest,
    CreateSellOrderRequest,
    ErrorResponse,
    MarketStatsResponse,
    SellOrderResponse,
    SellOrderWithItemResponse,
    UpdateOrderStatusRequest,
    UserInfo,
)
from toremain.core.exceptions import PermissionDeniedError
from toremain.core.logging import get_logger
from toremain.db.models import NFTSellOrder
from toremain.services.market_service import MarketService

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["market"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _order(order: NFTSellOrder) -> SellOrderResponse:
    return SellOrderResponse.model_validate(order)


def _orders(orders: list[NFTSellOrder], message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": True,
        "data": [_order(o) for o in orders],
        "count": len(orders),
    }
    if message:
        body["message"] = message
    return body


# === 판매 주문 ===


@router.post("/sell-orders", responses=ERRORS)
def create_sell_order(
    request: CreateSellOrderRequest,
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """오프체인 서명된 판매 주문 등록"""
    ensure_wallet(user, request.seller)
    order = service.create_sell_order(**request.model_dump())
    return {
        "success": True,
        "data": _order(order),
        "message": "판매 주문이 성공적으로 생성되었습니다",
    }


@router.get("/sell-orders")
def list_sell_orders(
    status: str = "active",
    service: MarketService = Depends(get_market_service),
) -> dict[str, Any]:
    """
    판매 주문 목록 (아이템 정보 포함)

    status: active | all | locked | completed | cancelled
    (active/all/알 수 없는 값은 ACTIVE + LOCKED)
    """
    views = service.active_sell_orders(status)
    return {
        "success": True,
        "data": [SellOrderWithItemResponse.model_validate(v) for v in views],
        "count": len(views),
    }


@router.get("/sell-orders/user/{address}")
def user_sell_orders(
    address: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    return _orders(service.orders_by_seller(address))


@router.get("/sell-orders/user/{address}/active")
def user_active_sell_orders(
    address: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    return _orders(
        service.active_orders_by_seller(address),
        "사용자 활성 판매 주문 목록을 성공적으로 조회했습니다",
    )


@router.get("/sell-orders/user/{address}/completed")
def user_completed_sell_orders(
    address: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    return _orders(
        service.completed_orders_by_seller(address),
        "사용자 완료된 판매 주문 목록을 성공적으로 조회했습니다",
    )


@router.get("/sell-orders/user/{address}/stats")
def user_order_stats(
    address: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    return {"success": True, "data": service.order_stats_by_seller(address)}


@router.get("/sell-orders/{order_id}", responses=ERRORS)
def get_sell_order(
    order_id: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    return {"success": True, "data": _order(service.get_sell_order(order_id))}


@router.put("/sell-orders/{order_id}/status", responses=ERRORS)
def update_sell_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """주문 상태 직접 변경 (판매자 또는 락을 건 구매자)"""
    order = service.get_sell_order(order_id)
    parties = {order.seller.lower()}
    if order.locked_by:
        parties.add(order.locked_by.lower())
    if not user.wallet_address or user.wallet_address.lower() not in parties:
        raise PermissionDeniedError("주문 상태를 변경할 권한이 없습니다")
    order = service.update_status(order_id, request.status, request.buyer, request.matched_at)
    return {
        "success": True,
        "data": _order(order),
        "message": "주문 상태가 성공적으로 업데이트되었습니다",
    }


@router.post("/sell-orders/{order_id}/lock", responses=ERRORS)
def lock_sell_order(
    order_id: str,
    request: BuyerRequest,
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """구매 시작: ACTIVE -> LOCKED"""
    ensure_wallet(user, request.buyer_address)
    order = service.lock_order(order_id, request.buyer_address)
    return {"success": True, "data": _order(order)}


@router.delete("/sell-orders/{order_id}", responses=ERRORS)
def cancel_sell_order(
    order_id: str,
    user_address: Optional[str] = Query(default=None),
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """판매 주문 취소 (판매자만). user_address 생략 시 로그인 사용자 지갑."""
    address = user_address or user.wallet_address or ""
    ensure_wallet(user, address)
    service.cancel(order_id, address)
    return {"success": True, "message": "판매 주문이 성공적으로 취소되었습니다"}


@router.post("/sell-orders/{order_id}/confirm", responses=ERRORS)
def confirm_purchase(
    order_id: str,
    request: BuyerRequest,
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    ensure_wallet(user, request.buyer_address)
    service.confirm_purchase(order_id, request.buyer_address)
    return {"success": True, "message": "구매가 성공적으로 완료되었습니다"}


@router.post("/sell-orders/{order_id}/failure", responses=ERRORS)
def report_transaction_failure(
    order_id: str,
    request: BuyerRequest,
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    ensure_wallet(user, request.buyer_address)
    service.report_failure(order_id, request.buyer_address)
    return {"success": True, "message": "트랜잭션 실패가 보고되었습니다"}


@router.get("/sell-orders/{order_id}/offchain-data", responses=ERRORS)
def offchain_signature_data(
    order_id: str, service: MarketService = Depends(get_market_service)
) -> dict[str, Any]:
    """EIP-712 서명 검증용 도메인/타입/메시지"""
    data = service.offchain_signature_data(order_id)
    data["sell_order"] = _order(data["sell_order"])
    return {"success": True, "data": data}


# === 마켓 조회 ===


@router.get("/market/stats", response_model=MarketStatsResponse)
def market_stats(service: MarketService = Depends(get_market_service)) -> MarketStatsResponse:
    return MarketStatsResponse(**service.market_stats())


@router.get("/market/popular")
def popular_nfts(
    limit: int = Query(default=10, ge=1, le=100),
    service: MarketService = Depends(get_market_service),
) -> dict[str, Any]:
    return _orders(service.popular(limit))


@router.get("/market/search", responses=ERRORS)
def search_nfts(
    q: str,
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    currency: Optional[str] = None,
    service: MarketService = Depends(get_market_service),
) -> dict[str, Any]:
    """token id / 컨트랙트 주소 부분 일치 검색 (ACTIVE 주문만)"""
    return _orders(service.search(q, min_price, max_price, currency))


@router.get("/market/price-range", responses=ERRORS)
def price_range(
    min: str,
    max: str,
    service: MarketService = Depends(get_market_service),
) -> dict[str, Any]:
    return _orders(service.price_range(min, max))


@router.post("/market/expire")
def expire_orders(
    service: MarketService = Depends(get_market_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """deadline 이 지난 ACTIVE 주문 일괄 취소"""
    count = service.expire_orders()
    logger.info("Order expiry triggered by %s: %d", user.username, count)
    return {"success": True, "count": count}
