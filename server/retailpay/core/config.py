from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayConfig(BaseModel):
    """Credentials and endpoint shared by key-authenticated gateways."""

    secret_key: Optional[str] = None
    public_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    base_url: str = ""

    def is_configured(self) -> bool:
        return bool(self.secret_key and self.secret_key.strip())


class PaystackConfig(GatewayConfig):
    base_url: str = "https://api.paystack.co"


class FlutterwaveConfig(GatewayConfig):
    base_url: str = "https://api.flutterwave.com/v3"


class OpayConfig(GatewayConfig):
    base_url: str = "https://sandboxapi.opaycheckout.com"
    merchant_id: Optional[str] = None


class CryptoConfig(BaseModel):
    api_key: Optional[str] = None
    ipn_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    public_key: Optional[str] = None
    base_url: str = "https://api.nowpayments.io/v1"

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def signing_secret(self) -> Optional[str]:
        return self.ipn_secret or self.webhook_secret


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="RetailPay")
    app_url: str = Field(default="http://localhost:8000")
    environment: Literal["development", "testing", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")

    default_gateway: str = Field(default="paystack", description="Gateway used when none is selected")
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    paystack: PaystackConfig = Field(default_factory=PaystackConfig)
    flutterwave: FlutterwaveConfig = Field(default_factory=FlutterwaveConfig)
    opay: OpayConfig = Field(default_factory=OpayConfig)
    crypto: CryptoConfig = Field(default_factory=CryptoConfig)


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Gateway credentials are read from nested environment variables,
    e.g. ``PAYSTACK__SECRET_KEY`` or ``CRYPTO__IPN_SECRET``.
    """
    return Settings()
