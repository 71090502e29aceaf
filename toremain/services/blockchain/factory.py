"""Factory for creating blockchain client instances.

mock 은 BLOCKCHAIN_PROVIDER=mock 일 때만 사용한다. 그 외 잘못된 설정은
ConfigurationError.
"""

from typing import Optional

from toremain.config import settings
from toremain.core.exceptions import ConfigurationError
from toremain.core.logging import get_logger
from toremain.services.blockchain.base import BlockchainClient
from toremain.services.blockchain.http import HttpBlockchainClient
from toremain.services.blockchain.mock import MockBlockchainClient

logger = get_logger(__name__)

PROVIDERS = ("http", "mock")


def get_blockchain_client(provider_name: Optional[str] = None) -> BlockchainClient:
    """Get a blockchain client instance.

    Args:
        provider_name: Optional provider name. If not specified,
                      uses BLOCKCHAIN_PROVIDER from config.

    Raises:
        ConfigurationError: unknown provider, or http without BLOCKCHAIN_SERVER_URL.
    """
    name = (provider_name or settings.BLOCKCHAIN_PROVIDER or "").strip().lower()

    if name == "mock":
        logger.warning("Using MockBlockchainClient: minted token ids are not real")
        return MockBlockchainClient()

    if name == "http":
        if not settings.BLOCKCHAIN_SERVER_URL:
            raise ConfigurationError(
                "BLOCKCHAIN_SERVER_URL is required for the http provider"
            )
        logger.debug("Using HttpBlockchainClient: %s", settings.BLOCKCHAIN_SERVER_URL)
        return HttpBlockchainClient(
            base_url=settings.BLOCKCHAIN_SERVER_URL,
            timeout=settings.BLOCKCHAIN_TIMEOUT,
        )

    raise ConfigurationError(
        f"Unknown blockchain provider: {name!r}",
        details={"supported": list(PROVIDERS)},
    )
