"""Game profile API endpoints."""

from fastapi import APIRouter, Depends

from toremain.api.deps import ensure_same_user, get_profile_service, require_user
from toremain.api.schemas import (
    EquipmentSlotRequest,
    EquipmentUpdateResponse,
    ErrorResponse,
    ExperienceUpdateRequest,
    ExperienceUpdateResponse,
    GoldUpdateRequest,
    GoldUpdateResponse,
    ProfileCreateRequest,
    ProfileResponse,
    ProfileSyncRequest,
    ProfileUpdateRequest,
    UserInfo,
)
from toremain.core.logging import get_logger
from toremain.services.profile_service import ProfileService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _owned_profile_id(service: ProfileService, profile_id: int, user: UserInfo) -> int:
    ensure_same_user(user, service.get(profile_id).user_id)
    return profile_id


@router.post("", response_model=ProfileResponse, responses=ERRORS)
def create_profile(
    request: ProfileCreateRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ProfileResponse:
    """새 캐릭터 프로필 생성"""
    ensure_same_user(user, request.user_id)
    return ProfileResponse.model_validate(service.create(request.user_id, request.profile_name))


@router.get("/user/{user_id}", response_model=list[ProfileResponse], responses=ERRORS)
def list_profiles(
    user_id: int,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> list[ProfileResponse]:
    return [ProfileResponse.model_validate(p) for p in service.list_by_user(user_id)]


@router.post("/sync", response_model=ProfileResponse, responses=ERRORS)
def sync_profile(
    request: ProfileSyncRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ProfileResponse:
    """
    게임 클라이언트 프로필 동기화

    profile_id 가 없으면 user_id + profile_name 으로 새로 만들고,
    있으면 전달된 필드만 갱신합니다.
    """
    if request.profile_id is None:
        ensure_same_user(user, request.user_id if request.user_id is not None else user.id)
        data = request.model_dump()
        data["user_id"] = user.id
    else:
        _owned_profile_id(service, request.profile_id, user)
        data = request.model_dump()
    return ProfileResponse.model_validate(service.sync(data))


@router.post("/gold", response_model=GoldUpdateResponse, responses=ERRORS)
def update_gold(
    request: GoldUpdateRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> GoldUpdateResponse:
    """골드 증감 (amount 음수면 차감, 결과가 음수면 400)"""
    profile_id = _owned_profile_id(service, request.profile_id, user)
    return GoldUpdateResponse.model_validate(service.update_gold(profile_id, request.amount))


@router.post("/experience", response_model=ExperienceUpdateResponse, responses=ERRORS)
def add_experience(
    request: ExperienceUpdateRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ExperienceUpdateResponse:
    profile_id = _owned_profile_id(service, request.profile_id, user)
    result = service.add_experience(profile_id, request.amount)
    return ExperienceUpdateResponse.model_validate(result)


@router.post("/equipment", response_model=EquipmentUpdateResponse, responses=ERRORS)
def set_equipment(
    request: EquipmentSlotRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> EquipmentUpdateResponse:
    """장비 슬롯 변경 (item_id 가 null 이면 해제)"""
    profile_id = _owned_profile_id(service, request.profile_id, user)
    result = service.set_equipment(profile_id, request.slot, request.item_id)
    return EquipmentUpdateResponse.model_validate(result)


@router.get("/{profile_id}", response_model=ProfileResponse, responses=ERRORS)
def get_profile(
    profile_id: int,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ProfileResponse:
    return ProfileResponse.model_validate(service.get(profile_id))


@router.patch("/{profile_id}", response_model=ProfileResponse, responses=ERRORS)
def update_profile(
    profile_id: int,
    request: ProfileUpdateRequest,
    service: ProfileService = Depends(get_profile_service),
    user: UserInfo = Depends(require_user),
) -> ProfileResponse:
    """프로필 부분 갱신. version 을 함께 보내면 낙관적 잠금 검사."""
    _owned_profile_id(service, profile_id, user)
    fields = request.model_dump(exclude={"version"})
    profile = service.update(profile_id, fields, expected_version=request.version)
    logger.info("Profile %d updated by user %d", profile_id, user.id)
    return ProfileResponse.model_validate(profile)
