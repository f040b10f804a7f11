from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    store_path: str | None = Field(default=None, alias="CHOPSTICKS_STORE_PATH")
    allow_self_join: bool = Field(default=True, alias="CHOPSTICKS_ALLOW_SELF_JOIN")
    allowed_origins_raw: str = Field(
        default=DEFAULT_ALLOWED_ORIGINS, alias="CHOPSTICKS_ALLOWED_ORIGINS"
    )
    log_level: str = Field(default="INFO", alias="CHOPSTICKS_LOG_LEVEL")

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins_raw.split(",") if origin.strip()]


def load_settings() -> Settings:
    return Settings()
