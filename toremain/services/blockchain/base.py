"""Abstract base class for blockchain server clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class MintResult:
    """민팅 결과. token_id 가 있으면 성공."""

    token_id: Optional[str] = None
    tx_hash: Optional[str] = None
    token_uri: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.token_id is not None


@dataclass
class ContractResult:
    """burn / unlock / transfer 공통 결과"""

    success: bool
    error_message: Optional[str] = None
    tx_hash: Optional[str] = None


@dataclass
class LockResult:
    """lockup 결과. error 가 없으면 성공."""

    tx_hash: Optional[str] = None
    vault_address: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.error


@dataclass
class NftListResult:
    success: bool
    nft_ids: list[str] = field(default_factory=list)
    error_message: Optional[str] = None


class BlockchainClient(ABC):
    """Abstract base class for blockchain server clients.

    All implementations convert transport failures into unsuccessful
    results instead of raising, so callers only branch on `success`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the client name."""
        ...

    @abstractmethod
    def mint(
        self,
        wallet_address: str,
        item_id: int,
        user_equip_item_id: int,
        item_data: dict[str, Any],
        metadata_url: str,
    ) -> MintResult:
        """Mint an NFT for the given equip item."""
        ...

    @abstractmethod
    def burn(
        self, user_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        """Burn an NFT."""
        ...

    @abstractmethod
    def list_nfts(self, wallet_address: str, contract_address: str) -> NftListResult:
        """Return token ids owned by the wallet."""
        ...

    @abstractmethod
    def lock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> LockResult:
        """Lock an NFT into the marketplace vault."""
        ...

    @abstractmethod
    def unlock(
        self, wallet_address: str, token_id: str, contract_address: str
    ) -> ContractResult:
        """Release an NFT from the vault back to the wallet."""
        ...

    @abstractmethod
    def transfer(
        self,
        wallet_address: str,
        to_wallet_address: str,
        token_id: str,
        contract_address: str,
    ) -> ContractResult:
        """Transfer an NFT to another wallet."""
        ...

    def close(self) -> None:
        """Release network resources."""
