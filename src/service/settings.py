from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from autovalue.config import MarketValueConfig, ValuationDefaults, WorkflowConfig


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Prefilled contact details for the condition page
    default_email: str = Field(default="valuations@example.com", alias="WEBUYEMAIL")
    default_zip: str = Field(default="34238", alias="WEBUYZIPCODE")

    # Browser workflow
    landing_url: str = Field(default="https://www.webuyanycarusa.com/?r=1", alias="LANDING_URL")
    headless: bool = Field(default=True, alias="HEADLESS")
    navigation_timeout_ms: int = Field(default=90_000, alias="NAVIGATION_TIMEOUT_MS")
    public_dir: str = Field(default="public", alias="PUBLIC_DIR")
    shots_dir: str = Field(default="", alias="SHOTS_DIR")

    # Market value cross-reference
    market_value_enabled: bool = Field(default=True, alias="MARKET_VALUE_ENABLED")
    market_value_urls: str = Field(default="", alias="MARKET_VALUE_URLS")
    market_value_timeout_seconds: float = Field(default=20.0, alias="MARKET_VALUE_TIMEOUT_SECONDS")

    # Image analysis
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    vision_model: str = Field(default="gpt-4o-mini", alias="VISION_MODEL")
    vision_timeout_seconds: float = Field(default=60.0, alias="VISION_TIMEOUT_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def shots_path(self) -> Path:
        return Path(self.shots_dir) if self.shots_dir else Path(self.public_dir) / "shots"

    def workflow_config(self) -> WorkflowConfig:
        return WorkflowConfig(landing_url=self.landing_url, navigation_timeout_ms=self.navigation_timeout_ms)

    def valuation_defaults(self) -> ValuationDefaults:
        return ValuationDefaults(zip=self.default_zip, email=self.default_email)

    def market_value_config(self) -> MarketValueConfig:
        templates = tuple(t.strip() for t in self.market_value_urls.split(",") if t.strip())
        if not templates:
            return MarketValueConfig(enabled=self.market_value_enabled, timeout_seconds=self.market_value_timeout_seconds)
        return MarketValueConfig(
            enabled=self.market_value_enabled,
            timeout_seconds=self.market_value_timeout_seconds,
            url_templates=templates,
        )
