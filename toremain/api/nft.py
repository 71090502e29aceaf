"""NFT API endpoints.

NFT 요청 실패는 {success: false, error_message} 형태로 응답한다.
"""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from toremain.api.deps import ensure_same_user, ensure_wallet, get_nft_service, require_user
from toremain.api.schemas import (
    ItemData,
    NftBurnRequest,
    NftListResponse,
    NftLockRequest,
    NftLockResponse,
    NftMintRequest,
    NftMintResponse,
    NftResultResponse,
    NftTransferRequest,
    NftUnlockRequest,
    UserInfo,
)
from toremain.core.exceptions import ToremainError
from toremain.core.logging import get_logger
from toremain.services.nft_service import NftService

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["nft"])


def _failure(model: type[BaseModel], error: ToremainError) -> JSONResponse:
    logger.info("NFT request failed (%d): %s", error.status_code, error.message)
    content = model(success=False, error_message=error.message).model_dump()
    return JSONResponse(status_code=error.status_code, content=content)


@router.post("/nft/mint", response_model=NftMintResponse)
def mint_nft(
    request: NftMintRequest,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    """
    장비 아이템 NFT화

    성공 시 아이템은 프로필에서 빠지고 지갑(ONCHAIN) 위치로 이동합니다.
    """
    try:
        ensure_same_user(user, request.user_id)
        nft_id = service.mint(request.user_id, request.profile_id, request.equip_item_id)
    except ToremainError as e:
        return _failure(NftMintResponse, e)
    return NftMintResponse(success=True, nft_id=nft_id)


@router.post("/nft/burn", response_model=NftResultResponse)
def burn_nft(
    request: NftBurnRequest,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    try:
        ensure_wallet(user, request.user_address)
        service.burn(request.user_address, request.token_id, request.contract_address)
    except ToremainError as e:
        return _failure(NftResultResponse, e)
    return NftResultResponse(success=True)


@router.post("/nft/transfer", response_model=NftResultResponse)
def transfer_nft(
    request: NftTransferRequest,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    try:
        ensure_same_user(user, request.user_id)
        tx_hash = service.transfer(
            request.user_id, request.user_equip_item_id, request.to_user_id
        )
    except ToremainError as e:
        return _failure(NftResultResponse, e)
    return NftResultResponse(success=True, tx_hash=tx_hash)


@router.post("/nft/lock", response_model=NftLockResponse)
def lock_nft(
    request: NftLockRequest,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    """마켓 판매를 위해 NFT 를 vault 에 잠금"""
    try:
        ensure_wallet(user, request.wallet_address)
        info = service.lock(user.wallet_address, request.nft_id)
    except ToremainError as e:
        return _failure(NftLockResponse, e)
    return NftLockResponse(
        success=True,
        nft_id=info.nft_id,
        tx_hash=info.tx_hash,
        vault_address=info.vault_address,
        message=info.message,
    )


@router.post("/nft/unlock", response_model=NftResultResponse)
def unlock_nft(
    request: NftUnlockRequest,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    try:
        ensure_same_user(user, request.user_id)
        tx_hash = service.unlock(request.user_id, request.nft_id)
    except ToremainError as e:
        return _failure(NftResultResponse, e)
    return NftResultResponse(success=True, tx_hash=tx_hash)


@router.get("/nft/list/{user_id}", response_model=NftListResponse)
def list_nfts(
    user_id: int,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
):
    """지갑 NFT 목록 조회 + DB 소유권 동기화"""
    try:
        ensure_same_user(user, user_id)
        items = service.list_nfts(user_id)
    except ToremainError as e:
        return _failure(NftListResponse, e)
    return NftListResponse(success=True, items=[ItemData(**i) for i in items])


@router.get("/nfts/user/{address}")
def user_nft_items(
    address: str,
    service: NftService = Depends(get_nft_service),
    user: UserInfo = Depends(require_user),
) -> dict[str, Any]:
    """지갑 주소의 NFT화된 아이템 메타데이터 목록"""
    items = service.user_nft_items(address)
    return {"success": True, "data": items, "count": len(items)}


@router.get("/metadata/{equip_item_id}")
def nft_metadata(
    equip_item_id: int,
    service: NftService = Depends(get_nft_service),
) -> dict[str, Any]:
    """NFT tokenURI 가 가리키는 메타데이터 (공개)"""
    return service.metadata(equip_item_id)
