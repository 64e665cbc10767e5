from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./order_console.db"

    # Display / day boundaries
    default_timezone: str = "Asia/Shanghai"

    # Activation codes
    activation_code_ttl_minutes: int = 15
    activation_code_length: int = 6
    activation_code_max_attempts: int = 20
    default_admin_activation_code: str = "8888"

    # Listings
    default_page_size: int = 10
    max_page_size: int = 100

    # App
    debug: bool = False
    allowed_origins: str = ""  # comma-separated


settings = Settings()
