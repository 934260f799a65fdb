# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .models import AssistedConfig

log = logging.getLogger("assisted")

SECRETS_ENV = "ASSISTED_SECRETS_FILE"
TOKEN_ENV = "OFFLINE_TOKEN"


def _merged(base: Dict[str, Any], secrets: Dict[str, Any]) -> Dict[str, Any]:
    """
    Config with *secrets* laid over it. Sections merge key by key; empty
    secret values never blank out a configured one.
    """
    out = dict(base)
    for key, value in secrets.items():
        current = out.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            out[key] = _merged(current, value)
        elif value is not None and value != "":
            out[key] = value
    return out


def _secrets_path(config_path: Path) -> Optional[Path]:
    """$ASSISTED_SECRETS_FILE wins; otherwise a secrets.yaml beside the config."""
    explicit = os.environ.get(SECRETS_ENV)
    if explicit:
        if Path(explicit).is_file():
            return Path(explicit)
        log.warning(f"{SECRETS_ENV}={explicit} does not exist, ignoring it")
        return None

    sibling = config_path.with_name("secrets.yaml")
    return sibling if sibling.is_file() else None


def _read_yaml(path: Path) -> Dict[str, Any]:
    """YAML mapping from *path* with ${VAR} references expanded."""
    data = yaml.safe_load(os.path.expandvars(path.read_text()))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def _with_token_fallback(cfg: AssistedConfig) -> AssistedConfig:
    if not cfg.api.offline_token and os.environ.get(TOKEN_ENV):
        log.debug(f"Using offline token from ${TOKEN_ENV}")
        cfg.api.offline_token = os.environ[TOKEN_ENV]
    return cfg


def load_config(path: Optional[str | Path] = None) -> AssistedConfig:
    """
    Load and validate an assisted YAML config.

    With no *path* the defaults are used (public SaaS endpoint, 90 minute
    installs, three hosts). Secrets can be supplied two ways:

    **secrets.yaml**
        A file mirroring the config structure, found via
        ``ASSISTED_SECRETS_FILE`` or next to the config, merged before
        validation.

    **environment variables**
        ``${ENV_VAR}`` placeholders anywhere in the YAML, and ``OFFLINE_TOKEN``
        when ``api.offline_token`` is left empty.
    """
    if path is None:
        log.debug("No config file given, using defaults")
        return _with_token_fallback(AssistedConfig())

    path = Path(path)
    data = _read_yaml(path)

    secrets = _secrets_path(path)
    if secrets is not None:
        log.debug(f"Merging secrets from {secrets}")
        data = _merged(data, _read_yaml(secrets))

    return _with_token_fallback(AssistedConfig.model_validate(data))
