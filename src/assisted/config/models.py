# src/assisted/config/models.py

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl

from ..client.assisted import DEFAULT_BASE_URL, DEFAULT_TIMEOUT


class ApiConfig(BaseModel):
    """Where the Assisted Service lives and how to authenticate."""

    base_url: HttpUrl = Field(default=DEFAULT_BASE_URL, validate_default=True)
    offline_token: Optional[str] = None      # falls back to $OFFLINE_TOKEN
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    verify_tls: bool = True
    env: str = "saas"                        # label carried on lifecycle events

    model_config = {
        "extra": "forbid"
    }


class InstallationDefaults(BaseModel):
    expected_host_count: int = Field(default=3, ge=1)
    wait_for_hosts: bool = True
    timeout_minutes: float = Field(default=90, gt=0)

    model_config = {
        "extra": "forbid"
    }


class AssistedConfig(BaseModel):
    api: ApiConfig = Field(default_factory=ApiConfig)
    installation: InstallationDefaults = Field(default_factory=InstallationDefaults)
    state_dir: Optional[Path] = None
    log_dir: Optional[Path] = None

    model_config = {
        "extra": "forbid"
    }
