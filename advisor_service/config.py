from pathlib import Path
from typing import Literal
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, populate_by_name=True)
    provider: Literal["anthropic", "openai"] = Field(default="anthropic", alias="ADVISOR_PROVIDER")
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", alias="ANTHROPIC_MODEL")
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    temperature: float = Field(default=0.2, alias="ADVISOR_TEMPERATURE")
    max_tokens: int = Field(default=1500, alias="ADVISOR_MAX_TOKENS")
    timeout_seconds: float = Field(default=30.0, alias="ADVISOR_TIMEOUT_SECONDS")
    rate_limit_capacity: int = Field(default=20, alias="RATE_LIMIT_CAPACITY")
    rate_limit_window_seconds: float = Field(default=60.0, alias="RATE_LIMIT_WINDOW_SECONDS")
    currency_symbol: str = Field(default="€", alias="ADVISOR_CURRENCY_SYMBOL")

    def api_key(self) -> str | None:
        """Credential for the active provider, or None when not configured."""
        key = self.anthropic_api_key if self.provider == "anthropic" else self.openai_api_key
        key = (key or "").strip()
        return key or None

settings = Settings()
