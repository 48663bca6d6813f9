from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./feeledger.db", alias="DATABASE_URL")

    jwt_secret_key: str = Field("change-me", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Calendar used to cut daily/monthly collection windows
    report_timezone: str = Field("Asia/Kolkata", alias="REPORT_TIMEZONE")

    invoice_number_prefix: str = Field("INV", alias="INVOICE_NUMBER_PREFIX")
    transaction_id_prefix: str = Field("TXN", alias="TRANSACTION_ID_PREFIX")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
