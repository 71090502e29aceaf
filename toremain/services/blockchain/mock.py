"""In-memory blockchain client for local development and tests."""

import itertools
from typing import Any

from toremain.services.blockchain.base import (
    BlockchainClient,
    ContractResult,
    LockResult,
    MintResult,
    NftListResult,
)

MOCK_VAULT_ADDRESS = "0x000000000000000000000000000000000000dEaD"


class MockBlockchainClient(BlockchainClient):
    """Mock blockchain client that keeps token ownership in memory.

    Used for testing and when no blockchain server is configured.
    """

    def __init__(self, start_token_id: int = 1) -> None:
        self._counter = itertools.count(start_token_id)
        self.owners: dict[str, str] = {}  # token_id -> wallet
        self.locked: set[str] = set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def name(self) -> str:
        return "mock"

    def mint(
        self,
        wallet_address: str,
        item_id: int,
        user_equip_item_id: int,
        item_data: dict[str, Any],
        metadata_url: str,
    ) -> MintResult:
        self.calls.append(
            ("mint", {"wallet_address": wallet_address, "metadata_url": metadata_url})
        )
        token_id = str(next(self._counter))
        self.owners[token_id] = wallet_address
        return MintResult(
            token_id=token_id,
            tx_hash=f"0xmint{token_id}",
            token_uri=metadata_url,
        )

    def burn(
        self, user_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        self.calls.append(("burn", {"user_address": user_address, "token_id": token_id}))
        if self.owners.get(token_id) != user_address:
            return ContractResult(success=False, error_message="Not token owner")
        del self.owners[token_id]
        self.locked.discard(token_id)
        return ContractResult(success=True, tx_hash=f"0xburn{token_id}")

    def list_nfts(self, wallet_address: str, contract_address: str) -> NftListResult:
        self.calls.append(("list", {"wallet_address": wallet_address}))
        nft_ids = [t for t, owner in self.owners.items() if owner == wallet_address]
        return NftListResult(success=True, nft_ids=nft_ids)

    def lock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> LockResult:
        self.calls.append(("lock", {"wallet_address": wallet_address, "token_id": token_id}))
        if self.owners.get(token_id) != wallet_address:
            return LockResult(error="Not token owner")
        if token_id in self.locked:
            return LockResult(error="Token already locked")
        self.locked.add(token_id)
        return LockResult(
            tx_hash=f"0xlock{token_id}",
            vault_address=MOCK_VAULT_ADDRESS,
            message="locked",
        )

    def unlock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        self.calls.append(
            ("unlock", {"wallet_address": wallet_address, "token_id": token_id})
        )
        if token_id not in self.locked:
            return ContractResult(success=False, error_message="Token is not locked")
        self.locked.discard(token_id)
        return ContractResult(success=True, tx_hash=f"0xunlock{token_id}")

    def transfer(
        self,
        wallet_address: str,
        to_wallet_address: str,
        token_id: str,
        contract_address: str,
    ) -> ContractResult:
        self.calls.append(
            ("transfer", {"from": wallet_address, "to": to_wallet_address, "token_id": token_id})
        )
        if self.owners.get(token_id) != wallet_address:
            return ContractResult(success=False, error_message="Not token owner")
        if token_id in self.locked:
            return ContractResult(success=False, error_message="Token is locked")
        self.owners[token_id] = to_wallet_address
        return ContractResult(success=True, tx_hash=f"0xtransfer{token_id}")
