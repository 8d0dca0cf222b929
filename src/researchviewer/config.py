"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `RESEARCHVIEWER_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ResearchViewer settings.

    All fields are environment-configurable. Prefix is `RESEARCHVIEWER_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESEARCHVIEWER_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Research backend
    api_base_url: str = Field(default="https://api.vertesia.io/api/v1")
    api_key: str | None = Field(default=None)
    environment_id: str | None = Field(default=None)
    model: str = Field(default="publishers/anthropic/models/claude-sonnet-4")
    interaction_name: str = Field(default="ResearchV2")
    http_timeout_s: float = Field(default=30.0, ge=1.0, le=600.0)

    # Outline navigation
    toc_proximity_threshold: float = Field(default=200.0, ge=0.0)
    toc_target_offset: float = Field(default=50.0, ge=0.0)

    # Notifications
    toast_duration_s: float = Field(default=3.0, ge=0.0, le=60.0)

    # Export
    export_page_width: int = Field(default=800, ge=100, le=4000)
    export_margin_in: float = Field(default=0.75, ge=0.0, le=3.0)
    export_scale: int = Field(default=2, ge=1, le=4)
    export_image_quality: float = Field(default=0.98, gt=0.0, le=1.0)
    export_settle_s: float = Field(default=0.2, ge=0.0, le=10.0)
    exports_dir: Path = Field(default=Path("exports"))


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("RESEARCHVIEWER_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
