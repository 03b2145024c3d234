from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Cache settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Logging
    log_level: str = "info"

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    cache_serializer: str = "json"  # Options: "json", "raw"

    # Redis connection
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 2.0
    redis_socket_connect_timeout: float = 2.0

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
