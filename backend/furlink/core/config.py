"""Application configuration."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DeployPlatform = Literal["local", "zeabur", "zion"]

# Default public base URL per deployment target
PLATFORM_BASE_URLS: dict[str, str] = {
    "local": "http://localhost:8000",
    "zeabur": "https://furlink-backend-us.zeabur.app",
    "zion": "https://api.zion.com",
}


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "furlink"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./furlink.db"
    auto_create_tables: bool = False

    # JWT (tokens are issued by the account service; we only verify them)
    jwt_secret: str = "change-me-in-production-use-openssl-rand-hex-32"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Deployment target
    deploy_platform: DeployPlatform = "local"
    public_base_url: str | None = None
    platform_api_key: str = ""  # service credential for X-Platform-Key (notification service, scheduler)

    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Request metrics
    metrics_history_size: int = 500
    slow_request_ms: float = 5000.0

    @property
    def base_url(self) -> str:
        """Public base URL: explicit override, else the platform default."""
        return self.public_base_url or PLATFORM_BASE_URLS[self.deploy_platform]


settings = Settings()
