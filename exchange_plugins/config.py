from pathlib import Path
from typing import Any, Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # HTTP
    request_timeout_seconds: int = Field(default=30, description="Provider request timeout")

    # Swap provider credentials
    changenow_api_key: str = Field(default="", description="ChangeNOW API key")
    changelly_api_key: str = Field(default="", description="Changelly API key")
    changelly_secret: str = Field(default="", description="Changelly HMAC signing secret")
    sideshift_affiliate_id: str = Field(
        default="",
        description="SideShift.ai affiliate id",
        validation_alias=AliasChoices("sideshift_affiliate_id", "SIDESHIFT_AFFILIATE_ID", "SIDESHIFT_AFFILIATE"),
    )
    zeroex_api_key: str = Field(
        default="",
        description="0x Swap API key",
        validation_alias=AliasChoices("zeroex_api_key", "ZEROEX_API_KEY", "ZERO_X_API_KEY"),
    )

    # Rate provider credentials
    currencyconverter_api_key: str = Field(default="", description="CurrencyConverterAPI key")

    # Cache Settings
    coincap_asset_cache_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="TTL for the Coincap symbol -> asset id map",
    )

    def init_options_for(self, plugin_id: str) -> Dict[str, Any]:
        """Build the ``init_options`` a host would pass to ``plugin_id``."""

        options: Dict[str, Dict[str, Any]] = {
            "changenow": {"apiKey": self.changenow_api_key},
            "changelly": {"apiKey": self.changelly_api_key, "secret": self.changelly_secret},
            "sideshift": {"affiliateId": self.sideshift_affiliate_id},
            "zeroex": {"apiKey": self.zeroex_api_key},
            "currencyconverter": {"apiKey": self.currencyconverter_api_key},
        }
        return {k: v for k, v in options.get(plugin_id, {}).items() if v}


# Global settings instance
settings = Settings()
