from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    default_admin_email: Optional[str] = Field(None, alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: Optional[str] = Field(None, alias="DEFAULT_ADMIN_PASSWORD")

    # Day of the billing month used when a generation request carries no due date
    default_due_day: int = Field(10, alias="DEFAULT_DUE_DAY", ge=1, le=28)

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
