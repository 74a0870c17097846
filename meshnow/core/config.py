"""Configuration management for MeshNow.

Values are read from environment variables with the ``MESHNOW_`` prefix,
then from a ``.env`` file in the working directory, then from the defaults
below. API keys are not configuration; they live in the system keyring
(see :mod:`meshnow.core.secrets`) and are passed explicitly to each client.

Example .env file::

    MESHNOW_POLL_INTERVAL_S=2.0
    MESHNOW_RELAY_PORT=8787
    MESHNOW_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MeshNowConfig(BaseSettings):
    """Application settings shared by the desktop app and the relay."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MESHNOW_",
        case_sensitive=False,
    )

    meshy_base_url: str = Field(default="https://api.meshy.ai")
    formnow_base_url: str = Field(default="https://api.formlabs.com/form-now")
    request_timeout_s: float = Field(default=15.0, gt=0)

    poll_interval_s: float = Field(default=2.0, gt=0, description="Delay between status queries")
    poll_max_attempts: int = Field(
        default=900,
        ge=0,
        description="Status queries before giving up; 0 polls until the task is terminal",
    )

    relay_host: str = Field(default="127.0.0.1")
    relay_port: int = Field(default=8787, ge=1024, le=65535)
    relay_url: Optional[str] = Field(
        default=None,
        description="Base URL of an external relay; the embedded relay is used when unset",
    )
    embedded_relay: bool = Field(default=True)

    downloads_dir: Path = Field(default=Path.home() / "MeshNow")
    log_level: str = Field(default="INFO")

    @property
    def relay_base_url(self) -> str:
        if self.relay_url:
            return self.relay_url.rstrip("/")
        return f"http://{self.relay_host}:{self.relay_port}"

    @property
    def max_attempts(self) -> Optional[int]:
        return self.poll_max_attempts or None


config = MeshNowConfig()
