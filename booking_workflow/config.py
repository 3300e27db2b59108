"""
Config loading via pydantic and python-dotenv.

Values come from the process environment, after ``.env`` (if present) has
been loaded without overriding variables that are already set.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=False)

TRUE_VALUES = {"1", "true", "yes", "on"}


class ApiConfig(BaseModel):
    base_url: str = "http://localhost:8080/api"
    token: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0)
    use_mock: bool = True


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)


class Settings(BaseModel):
    api: ApiConfig = ApiConfig()
    server: ServerConfig = ServerConfig()
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """
    Load and cache settings.

    Raises ValidationError if the environment holds invalid values.
    """
    env = os.environ

    api = ApiConfig(
        base_url=env.get("HOSPITAL_API_BASE_URL", "http://localhost:8080/api"),
        token=env.get("HOSPITAL_API_TOKEN") or None,
        timeout=float(env.get("HOSPITAL_API_TIMEOUT", "10")),
        use_mock=env.get("USE_MOCK_API", "true").strip().lower() in TRUE_VALUES,
    )
    server = ServerConfig(
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", "8000")),
    )
    return Settings(api=api, server=server, log_level=env.get("LOG_LEVEL", "INFO"))


__all__ = ["Settings", "get_settings", "BASE_DIR"]
