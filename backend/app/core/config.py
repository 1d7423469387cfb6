from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any
from pathlib import Path
import os


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # Root logger level; LOG_LEVEL in the process env still wins at setup time
    LOG_LEVEL: str = "INFO"

    # CORS origins for the quoting frontend
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Redis connection URL. Empty/none/disabled keeps the FX cache in-process.
    REDIS_URL: str = ""

    # Live exchange-rate source. ``{currency}`` is replaced with the source
    # currency code; the JSON response must carry a ``rates`` mapping.
    FX_API_URL: str = "https://api.exchangerate-api.com/v4/latest/{currency}"
    # "memory" (per-process dict) or "redis" (shared across workers)
    FX_CACHE_BACKEND: str = "memory"
    FX_CACHE_TTL_SECONDS: int = 300
    FX_TIMEOUT_SECONDS: float = 3.0

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )

    @field_validator("FX_API_URL", "REDIS_URL", "FX_CACHE_BACKEND", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(self) -> "Settings":
        if self.CORS_ALLOW_ALL:
            self.CORS_ORIGINS = ["*"]
        return self


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
