"""
functions/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the ServiceNow change request adapter.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Loading default values from parameters/parameters.yaml
- Overriding defaults with environment variables (CHANGE_ADAPTER_*)
- Validating required settings (instance URL and credentials)
- Exposing a cached, fully-validated Settings object to the application

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is loaded in the following order (last wins):

1) YAML defaults from:
       parameters/parameters.yaml
2) Environment variables:
       CHANGE_ADAPTER_*

Credentials belong in the environment, never in the YAML file.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- HTTP calls
- Response normalization
- Health classification

It should only define *configuration structure and loading rules*.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import AnyHttpUrl, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"

REQUIRED_SETTINGS = ("instance_url", "username", "password")


class Settings(BaseSettings):
    """
    Runtime settings for the change request adapter.

    Load order / precedence:
        1) YAML defaults (parameters/parameters.yaml)
        2) Environment variables (CHANGE_ADAPTER_*), overriding YAML
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANGE_ADAPTER_",
        extra="ignore",
    )

    # Service metadata
    service_name: str = "servicenow_change_adapter"
    environment: str = "local"
    log_level: str = "INFO"

    # Identity attached to every ONLINE/OFFLINE event
    adapter_id: str = "servicenow-change-adapter"

    # ServiceNow instance
    # Optional at the model level to allow partial env loading;
    # enforced explicitly in get_settings().
    instance_url: Optional[AnyHttpUrl] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    change_request_table: str = "change_request"

    # GET sends sysparm_limit=query_limit; None lets ServiceNow decide
    query_limit: Optional[int] = Field(default=1, ge=1)

    # Transport
    http_timeout_seconds: float = 30.0
    max_retries: int = Field(default=0, ge=0)

    enable_debug_metadata: bool = Field(
        default=False,
        description="If true, responses include the adapter id and table in metadata.",
    )


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    Cached to avoid repeated disk I/O.
    """
    if not PARAMETERS_PATH.exists():
        logger.warning("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(
                "parameters_yaml_not_dict",
                path=str(PARAMETERS_PATH),
                type=type(data).__name__,
            )
            return {}
        logger.info("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
        return data
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Construct and return the final validated Settings object.

    Cached (singleton per process). Code needing configuration should call
    this function rather than instantiating Settings() directly.
    """
    # 1) YAML defaults
    yaml_data = _load_yaml_parameters()

    # 2) env overrides (partial)
    try:
        env_settings = Settings()
        env_data = env_settings.model_dump(exclude_unset=True)
        logger.info("settings_loaded_env_only_partial", fields=sorted(env_data.keys()))
    except ValidationError as exc:
        logger.warning("settings_env_validation_error", errors=exc.errors())
        env_data = {}

    # 3) merge
    merged: Dict[str, Any] = {**yaml_data, **env_data}

    # 4) enforce required instance settings
    missing = [name for name in REQUIRED_SETTINGS if not merged.get(name)]
    if missing:
        logger.error("settings_missing_required", missing=missing, yaml_path=str(PARAMETERS_PATH))
        raise RuntimeError(
            f"Missing required settings: {', '.join(missing)}. "
            "Set them either in environment variables (CHANGE_ADAPTER_*) "
            f"or in {PARAMETERS_PATH}."
        )

    # 5) final validation
    settings = Settings.model_validate(merged)

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        adapter_id=settings.adapter_id,
        instance_url=str(settings.instance_url),
        username=settings.username,
        change_request_table=settings.change_request_table,
        query_limit=settings.query_limit,
        http_timeout_seconds=settings.http_timeout_seconds,
        max_retries=settings.max_retries,
        enable_debug_metadata=settings.enable_debug_metadata,
    )

    return settings
