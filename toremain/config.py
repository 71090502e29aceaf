"""Application configuration loaded from environment variables and .env file."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./dev.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 이 서버의 외부 주소 (NFT metadata URL 생성에 사용)
    SERVER_URL: str = "http://localhost:8080"
    CORS_ORIGINS: list[str] = ["*"]

    # JWT
    JWT_SECRET: str = "defaultSecretKey-please-override-in-env-0000"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_VALIDITY: int = 3600  # seconds
    JWT_REFRESH_TOKEN_VALIDITY: int = 86400  # seconds

    # Blockchain server
    BLOCKCHAIN_PROVIDER: str = "http"
    BLOCKCHAIN_SERVER_URL: str = "http://localhost:3000"
    BLOCKCHAIN_CONTRACT_ADDRESS: str = "0x1234567890abcdef"
    BLOCKCHAIN_TIMEOUT: float = 30.0

    # AI server
    AI_PROVIDER: str = "http"
    AI_SERVER_URL: str = "http://localhost:8000"
    AI_TIMEOUT: float = 60.0

    # EIP-712 domain for off-chain sell order signatures
    MARKET_DOMAIN_NAME: str = "NFTMarketplace"
    MARKET_DOMAIN_VERSION: str = "1"
    MARKET_CHAIN_ID: int = 1
    MARKET_CONTRACT_ADDRESS: Optional[str] = None


settings = Settings()
