"""Blockchain server client module."""

from toremain.services.blockchain.base import (
    BlockchainClient,
    ContractResult,
    LockResult,
    MintResult,
    NftListResult,
)
from toremain.services.blockchain.factory import get_blockchain_client
from toremain.services.blockchain.http import HttpBlockchainClient
from toremain.services.blockchain.mock import MockBlockchainClient

__all__ = [
    "BlockchainClient",
    "ContractResult",
    "HttpBlockchainClient",
    "LockResult",
    "MintResult",
    "MockBlockchainClient",
    "NftListResult",
    "get_blockchain_client",
]
