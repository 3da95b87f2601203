from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CONSERVEBOT_", extra="ignore")

    app_name: str = "ConserveBot"
    timezone: str = "UTC"

    # Feedback loop
    tick_seconds: float = 1.0

    # Initial enclosure configuration (changeable at runtime via /api/config)
    artifact_type: str = "FOSSILS"
    demo_mode: str = "normal"

    # Fixed seed for reproducible demos; None = OS entropy
    sim_seed: Optional[int] = None

    # Storage
    sqlite_path: str = Field(default="conservebot.db")
    log_path: str = Field(default="conservebot.log")

    # In-memory bounds
    log_limit: int = 500
    history_24h_limit: int = 2000
    history_7d_limit: int = 400


settings = Settings()
