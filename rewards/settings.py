"""Application settings and configuration."""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import to_money


class Settings(BaseSettings):
    """Application configuration, read from ``REWARDS_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REWARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "referral-rewards"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    allowed_origins: str = "*"
    host: str = "0.0.0.0"
    port: int = 4000

    # Storage
    storage_backend: Literal["json", "memory"] = "json"
    data_path: str = "data.json"

    # Rewards
    referral_bonus: Decimal = Field(default=Decimal("10"), ge=0)
    default_withdrawal_method: str = "UPI"
    currency: str = "INR"

    # Auth
    session_ttl_hours: int = Field(default=720, gt=0)
    admin_api_key: Optional[SecretStr] = None

    @field_validator("referral_bonus")
    @classmethod
    def bonus_in_cents(cls, value: Decimal) -> Decimal:
        return to_money(value)

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()
