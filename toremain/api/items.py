"""Item API endpoints: item definitions, equip items, consumables."""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from toremain.api.deps import (
    ensure_same_user,
    get_item_service,
    get_profile_service,
    require_user,
)
from toremain.api.schemas import (
    ConsumableRequest,
    ConsumableResponse,
    EquipItemCreate,
    EquipItemResponse,
    ErrorResponse,
    ItemDefinitionCreate,
    ItemDefinitionResponse,
    ItemDefinitionUpdate,
    LocationUpdateRequest,
    UserInfo,
)
from toremain.db.models import ItemType
from toremain.services.item_service import ItemService
from toremain.services.profile_service import ProfileService

router = APIRouter(prefix="/api", tags=["items"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _ensure_profile_owner(
    profiles: ProfileService, profile_id: int, user: UserInfo
) -> None:
    ensure_same_user(user, profiles.get(profile_id).user_id)


# === 아이템 정의 ===


@router.post("/item-definitions", response_model=ItemDefinitionResponse, responses=ERRORS)
def create_item_definition(
    request: ItemDefinitionCreate,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> ItemDefinitionResponse:
    definition = service.create_definition(**request.model_dump())
    return ItemDefinitionResponse.model_validate(definition)


@router.get("/item-definitions", response_model=list[ItemDefinitionResponse])
def list_item_definitions(
    type: Optional[ItemType] = None,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> list[ItemDefinitionResponse]:
    """아이템 정의 목록 (type 필터 선택)"""
    return [ItemDefinitionResponse.model_validate(d) for d in service.list_definitions(type)]


@router.get(
    "/item-definitions/{item_def_id}",
    response_model=ItemDefinitionResponse,
    responses=ERRORS,
)
def get_item_definition(
    item_def_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> ItemDefinitionResponse:
    return ItemDefinitionResponse.model_validate(service.get_definition(item_def_id))


@router.patch(
    "/item-definitions/{item_def_id}",
    response_model=ItemDefinitionResponse,
    responses=ERRORS,
)
def update_item_definition(
    item_def_id: int,
    request: ItemDefinitionUpdate,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> ItemDefinitionResponse:
    definition = service.update_definition(item_def_id, **request.model_dump())
    return ItemDefinitionResponse.model_validate(definition)


@router.delete("/item-definitions/{item_def_id}", status_code=204, responses=ERRORS)
def delete_item_definition(
    item_def_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> Response:
    service.delete_definition(item_def_id)
    return Response(status_code=204)


# === 장비 아이템 ===


@router.post("/equip-items", response_model=EquipItemResponse, responses=ERRORS)
def add_equip_item(
    request: EquipItemCreate,
    service: ItemService = Depends(get_item_service),
    profiles: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> EquipItemResponse:
    """프로필 인벤토리에 장비 아이템 추가"""
    _ensure_profile_owner(profiles, request.profile_id, user)
    item = service.add_equip_item(
        request.profile_id, request.item_def_id, request.enhancement_data
    )
    return EquipItemResponse.model_validate(item)


@router.get(
    "/equip-items/{equip_item_id}", response_model=EquipItemResponse, responses=ERRORS
)
def get_equip_item(
    equip_item_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> EquipItemResponse:
    return EquipItemResponse.model_validate(service.get_equip_item(equip_item_id))


@router.get(
    "/profiles/{profile_id}/equip-items",
    response_model=list[EquipItemResponse],
    responses=ERRORS,
)
def list_profile_equip_items(
    profile_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> list[EquipItemResponse]:
    return [
        EquipItemResponse.model_validate(i)
        for i in service.list_equip_items_by_profile(profile_id)
    ]


@router.get(
    "/users/{user_id}/equip-items",
    response_model=list[EquipItemResponse],
    responses=ERRORS,
)
def list_user_equip_items(
    user_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> list[EquipItemResponse]:
    """사용자 소유 장비 전체 (NFT화된 아이템 포함)"""
    return [
        EquipItemResponse.model_validate(i)
        for i in service.list_equip_items_by_user(user_id)
    ]


@router.patch(
    "/equip-items/{equip_item_id}/location",
    response_model=EquipItemResponse,
    responses=ERRORS,
)
def update_equip_item_location(
    equip_item_id: int,
    request: LocationUpdateRequest,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> EquipItemResponse:
    ensure_same_user(user, service.get_equip_item(equip_item_id).user_id)
    item = service.update_location(equip_item_id, request.location_id, request.profile_id)
    return EquipItemResponse.model_validate(item)


@router.delete("/equip-items/{equip_item_id}", status_code=204, responses=ERRORS)
def delete_equip_item(
    equip_item_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> Response:
    """장비 아이템 삭제. NFT화된 아이템은 409."""
    ensure_same_user(user, service.get_equip_item(equip_item_id).user_id)
    service.delete_equip_item(equip_item_id)
    return Response(status_code=204)


# === 소비 아이템 ===


@router.post("/consumables", response_model=ConsumableResponse, responses=ERRORS)
def add_consumable(
    request: ConsumableRequest,
    service: ItemService = Depends(get_item_service),
    profiles: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ConsumableResponse:
    _ensure_profile_owner(profiles, request.profile_id, user)
    row = service.add_consumable(request.profile_id, request.item_def_id, request.quantity)
    return ConsumableResponse.model_validate(row)


@router.post("/consumables/consume", response_model=ConsumableResponse, responses=ERRORS)
def consume_consumable(
    request: ConsumableRequest,
    service: ItemService = Depends(get_item_service),
    profiles: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ConsumableResponse:
    """소비 아이템 사용. 모두 소진되면 quantity=0 으로 응답."""
    _ensure_profile_owner(profiles, request.profile_id, user)
    row = service.consume(request.profile_id, request.item_def_id, request.quantity)
    if row is None:
        return ConsumableResponse(
            profile_id=request.profile_id, item_def_id=request.item_def_id, quantity=0
        )
    return ConsumableResponse.model_validate(row)


@router.get(
    "/profiles/{profile_id}/consumables",
    response_model=list[ConsumableResponse],
    responses=ERRORS,
)
def list_consumables(
    profile_id: int,
    service: ItemService = Depends(get_item_service),
    user: UserInfo = Depends(require_user),
) -> list[ConsumableResponse]:
    return [ConsumableResponse.model_validate(r) for r in service.list_consumables(profile_id)]
