from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # JWT Authentication (tokens are minted by the external identity provider)
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # Application
    APP_NAME: str = "Bookkeeper Access API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = ""
    CORS_ALLOW_CREDENTIALS: bool = True

    # Scheduled jobs (invitation cleanup). Empty disables the endpoints.
    CRON_SECRET: str = ""

    # Invitations
    INVITATION_CODE_LENGTH: int = 12
    INVITATION_CODE_MAX_ATTEMPTS: int = 10
    INVITATION_EXPIRY_DAYS: int = 7
    INVITATION_CLEANUP_DAYS: int = 30
    INVITATION_ACCEPT_URL: str = "http://localhost:3000/auth/invitation"
    INVITATION_WEBHOOK_URL: str = ""
    INVITATION_WEBHOOK_TIMEOUT: float = 5.0

    # Organizations
    DEFAULT_CURRENCY: str = "DOP"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
