"""HTTP client for the blockchain server."""

from typing import Any, Optional

import httpx

from toremain.core.logging import get_logger
from toremain.services.blockchain.base import (
    BlockchainClient,
    ContractResult,
    LockResult,
    MintResult,
    NftListResult,
)

logger = get_logger(__name__)


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class HttpBlockchainClient(BlockchainClient):
    """Blockchain client talking JSON over HTTP.

    Endpoints (relative to base_url):
        POST /api/blockchain/nft/mint
        POST /api/blockchain/nft/burn
        GET  /api/blockchain/nft/list
        POST /api/blockchain/nft/lockup
        POST /api/blockchain/nft/unlockup
        POST /api/blockchain/nft/transfer
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        logger.info("HttpBlockchainClient initialized: %s", self._base_url)

    @property
    def name(self) -> str:
        return "http"

    def close(self) -> None:
        self._client.close()

    # === 내부 통신 ===

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST 후 JSON 본문 반환. 4xx/5xx 도 본문이 JSON 이면 그대로 반환."""
        response = self._client.post(path, json=payload)
        return self._parse(response)

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = self._client.get(path, params=params)
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, Any]:
        if response.is_error:
            logger.error(
                "블록체인 서버 오류 응답: HTTP %d - %s",
                response.status_code,
                response.text,
            )
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}
        if response.is_error:
            body.setdefault("success", False)
            body.setdefault(
                "errorMessage", body.get("error") or f"HTTP {response.status_code}"
            )
        return body

    # === 구현 ===

    def mint(
        self,
        wallet_address: str,
        item_id: int,
        user_equip_item_id: int,
        item_data: dict[str, Any],
        metadata_url: str,
    ) -> MintResult:
        payload = {
            "walletAddress": wallet_address,
            "itemId": item_id,
            "userEquipItemId": user_equip_item_id,
            "itemData": item_data,
            "metadataUrl": metadata_url,
        }
        try:
            body = self._post("/api/blockchain/nft/mint", payload)
        except httpx.HTTPError as e:
            logger.error("블록체인 서버 통신 오류 (mint): %s", e)
            return MintResult(error_message=f"블록체인 서버 통신 오류: {e}")

        if body.get("success") is False:
            return MintResult(
                error_message=body.get("errorMessage") or "블록체인 서버 응답 오류"
            )
        token_id = _str_or_none(body.get("tokenId"))
        return MintResult(
            token_id=token_id,
            tx_hash=body.get("txHash"),
            token_uri=body.get("tokenURI"),
            error_message=None if token_id is not None else "블록체인 서버 응답 오류",
        )

    def burn(
        self, user_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        payload = {
            "userAddress": user_address,
            "tokenId": token_id,
            "contractAddress": contract_address,
        }
        return self._contract_call("/api/blockchain/nft/burn", payload)

    def list_nfts(self, wallet_address: str, contract_address: str) -> NftListResult:
        params = {"walletAddress": wallet_address, "contractAddress": contract_address}
        try:
            body = self._get("/api/blockchain/nft/list", params)
        except httpx.HTTPError as e:
            logger.error("블록체인 서버 통신 오류 (list): %s", e)
            return NftListResult(
                success=False, error_message=f"블록체인 서버 통신 오류: {e}"
            )

        if not body.get("success"):
            return NftListResult(
                success=False,
                error_message=body.get("errorMessage") or "블록체인 서버 응답 오류",
            )
        nft_ids = [str(n) for n in body.get("nftIdList") or []]
        return NftListResult(success=True, nft_ids=nft_ids)

    def lock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> LockResult:
        payload = {
            "walletAddress": wallet_address,
            "tokenId": token_id,
            "contractAddress": contract_address,
        }
        try:
            body = self._post("/api/blockchain/nft/lockup", payload)
        except httpx.HTTPError as e:
            logger.error("블록체인 서버 통신 오류 (lockup): %s", e)
            return LockResult(error=f"블록체인 서버 통신 오류: {e}")

        error = body.get("error")
        if not error and body.get("success") is False:
            error = body.get("errorMessage") or "블록체인 서버 응답 오류"
        return LockResult(
            tx_hash=body.get("txHash"),
            vault_address=body.get("vaultAddress"),
            message=body.get("message"),
            error=error,
            details=body.get("details") or {},
        )

    def unlock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        payload = {
            "walletAddress": wallet_address,
            "tokenId": token_id,
            "contractAddress": contract_address,
        }
        return self._contract_call("/api/blockchain/nft/unlockup", payload)

    def transfer(
        self,
        wallet_address: str,
        to_wallet_address: str,
        token_id: str,
        contract_address: str,
    ) -> ContractResult:
        payload = {
            "walletAddress": wallet_address,
            "toWalletAddress": to_wallet_address,
            "nftId": token_id,
            "contractAddress": contract_address,
        }
        return self._contract_call("/api/blockchain/nft/transfer", payload)

    def _contract_call(self, path: str, payload: dict[str, Any]) -> ContractResult:
        try:
            body = self._post(path, payload)
        except httpx.HTTPError as e:
            logger.error("블록체인 서버 통신 오류 (%s): %s", path, e)
            return ContractResult(
                success=False, error_message=f"블록체인 서버 통신 오류: {e}"
            )
        if not body.get("success"):
            return ContractResult(
                success=False,
                error_message=body.get("errorMessage") or "블록체인 서버 응답 오류",
            )
        return ContractResult(success=True, tx_hash=body.get("txHash"))
