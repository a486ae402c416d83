"""Runtime configuration for the expense gateway"""
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MOCK_API_URL = "https://mockapi.io/api/v1/expenses"
DEFAULT_PORT = 8080


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Immutable process configuration, read once at startup.
    """
    model_config = ConfigDict(frozen=True)

    upstream_url: str = DEFAULT_MOCK_API_URL
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    upstream_timeout: float = Field(10.0, gt=0)
    preserve_upstream_status: bool = False
    rate_limit: Optional[str] = None
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @property
    def base_url(self) -> str:
        """Upstream collection URL without a trailing slash."""
        return self.upstream_url.rstrip("/")

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """Builds settings from the environment, optionally loading a .env file first."""
        if load_dotenv_file:
            load_dotenv()  # searches current dir and parents

        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            upstream_url=os.getenv("MOCK_API_URL") or DEFAULT_MOCK_API_URL,
            host=os.getenv("HOST", "0.0.0.0"),
            port=os.getenv("PORT") or DEFAULT_PORT,
            upstream_timeout=os.getenv("UPSTREAM_TIMEOUT") or 10.0,
            preserve_upstream_status=_env_bool("PRESERVE_UPSTREAM_STATUS"),
            rate_limit=os.getenv("RATE_LIMIT") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
