"""Configuration settings and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from resultcheck.errors import ConfigValidationError, ErrorContext

CONFIG_FILENAME = "resultcheck.yml"


class ResultcheckConfig(BaseSettings):
    """Configuration for resultcheck."""

    model_config = SettingsConfigDict(
        env_prefix="RESULTCHECK_",
        extra="ignore",
    )

    snapshot_dir: str = "_snapshots"
    default_kind: str = "text"
    interactive: bool = True
    sandbox_base: str | None = None
    render_width: int = 80

    @field_validator("snapshot_dir", mode="before")
    @classmethod
    def validate_snapshot_dir(cls, v: str) -> str:
        text = str(v)
        parts = text.replace("\\", "/").split("/")
        if not text or text.startswith("/") or ".." in parts:
            raise ConfigValidationError(
                message=f"snapshot_dir must be a relative directory inside the project: {text!r}",
                field="snapshot_dir",
                value=v,
            )
        return text

    @field_validator("default_kind", mode="before")
    @classmethod
    def validate_default_kind(cls, v: str) -> str:
        valid = {"text", "exact"}
        kind = str(v).lower()
        if kind not in valid:
            raise ConfigValidationError(
                message=f"Invalid default_kind: {v!r}. Valid: {sorted(valid)}",
                field="default_kind",
                value=v,
                context=ErrorContext(extra={"valid_kinds": sorted(valid)}),
            )
        return kind

    @field_validator("render_width", mode="before")
    @classmethod
    def validate_render_width(cls, v: int) -> int:
        width = int(v)
        if width < 20:
            raise ConfigValidationError(
                message=f"render_width must be at least 20, got {width}",
                field="render_width",
                value=v,
            )
        return width


def load_config(root: str | Path | None = None) -> ResultcheckConfig:
    """Load configuration from the project's resultcheck.yml and environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if root is not None:
        config_path = Path(root) / CONFIG_FILENAME
        if config_path.is_file():
            config_data = _load_from_file(config_path)

    config_data.update(_get_env_overrides())

    try:
        return ResultcheckConfig(**config_data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigValidationError(
            message=f"Invalid configuration value for {field}: {first['msg']}",
            field=field,
            value=first.get("input"),
            cause=e,
        ) from e


def _load_from_file(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(
            message=f"Failed to parse YAML configuration: {e}",
            context=ErrorContext(path=str(path)),
            cause=e,
        ) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigValidationError(
            message=f"Configuration must be a YAML mapping, got {type(config).__name__}",
            context=ErrorContext(path=str(path)),
        )
    return config


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_mappings = {
        "RESULTCHECK_SNAPSHOT_DIR": "snapshot_dir",
        "RESULTCHECK_DEFAULT_KIND": "default_kind",
        "RESULTCHECK_INTERACTIVE": ("interactive", lambda x: x.lower() in ("true", "1", "yes")),
        "RESULTCHECK_SANDBOX_BASE": "sandbox_base",
        "RESULTCHECK_RENDER_WIDTH": ("render_width", int),
    }

    for env_key, config_key in env_mappings.items():
        value = os.environ.get(env_key)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                try:
                    overrides[key] = converter(value)
                except ValueError as e:
                    raise ConfigValidationError(
                        message=f"Invalid value for {env_key}: {value!r}",
                        field=key,
                        value=value,
                        cause=e,
                    ) from e
            else:
                overrides[config_key] = value

    return overrides
