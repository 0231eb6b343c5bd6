"""Config loader utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config_settings import Config
from .error_codes import ErrorCode
from .exceptions import ConfigurationError
from .utils.logging import get_logger

_config: Config | None = None


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from .env, environment and config.yaml.

    Values from the YAML file take precedence over environment variables.
    """
    logger = get_logger(__name__)

    candidate_paths: list[Path] = []
    if config_path:
        candidate_paths.append(config_path.expanduser())
        logger.info(
            "config_loading", config_path=str(config_path), source="cli_argument"
        )
    else:
        env_path = os.getenv("SIYUAN_ANKI_CONFIG")
        if env_path:
            candidate_paths.append(Path(env_path).expanduser())
        candidate_paths.append(Path.cwd() / "config.yaml")
        logger.debug(
            "config_searching",
            paths=[str(p) for p in candidate_paths],
        )

    resolved_config_path: Path | None = None
    for candidate in candidate_paths:
        if candidate.exists():
            resolved_config_path = candidate
            logger.info("config_file_found", config_path=str(resolved_config_path))
            break

    if config_path and resolved_config_path is None:
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(msg, error_code=ErrorCode.CFG_INVALID.value)

    yaml_data: dict[str, Any] = {}
    if resolved_config_path:
        try:
            with open(resolved_config_path, encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                "config_yaml_load_error",
                config_path=str(resolved_config_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            msg = f"Failed to parse config file: {resolved_config_path}"
            suggestion = (
                "Check YAML syntax (indentation, colons, quotes). "
                "Validate file encoding is UTF-8. "
                f"Original error: {e}"
            )
            raise ConfigurationError(
                msg, suggestion=suggestion, error_code=ErrorCode.CFG_PARSE_FAILED.value
            ) from e

        if not isinstance(yaml_data, dict):
            msg = f"Config file must contain a mapping: {resolved_config_path}"
            raise ConfigurationError(msg, error_code=ErrorCode.CFG_PARSE_FAILED.value)

    unknown_keys = sorted(set(yaml_data) - set(Config.model_fields))
    if unknown_keys:
        logger.warning("config_warning", unknown_keys=unknown_keys)

    config_kwargs = {k: v for k, v in yaml_data.items() if k in Config.model_fields}

    try:
        config = Config(**config_kwargs)
    except ValidationError as e:
        logger.error(
            "config_validation_error",
            error=str(e),
            config_path=str(resolved_config_path) if resolved_config_path else None,
        )
        msg = f"Invalid configuration: {e.error_count()} error(s)"
        raise ConfigurationError(
            msg, suggestion=str(e), error_code=ErrorCode.CFG_INVALID.value
        ) from e

    config.validate_config()
    logger.debug(
        "config_loaded",
        siyuan_url=config.siyuan_url,
        anki_url=config.anki_url,
        sync_mode=config.sync_mode,
    )
    return config


def get_config() -> Config:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set singleton config instance (for testing)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset global config instance (for testing only)."""
    global _config
    _config = None


__all__ = ["Config", "get_config", "load_config", "reset_config", "set_config"]
