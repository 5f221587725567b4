"""Configuration.

Two layers:

``AppConfig`` is a frozen dataclass for the ASGI adapter itself —
immutable after creation, no string-key dict lookups.

``ConfigParam`` + ``load_config`` describe and check *application*
config, the free-form mapping routes receive as ``ctx.config``::

    SCHEMA = (
        ConfigParam("api_base_url", (url,)),
        ConfigParam("log_level", (one_of("debug", "info", "warn", "error"),), default="info"),
        ConfigParam("session_expires_ms", (of_type(int), min_value(1000)), default=86_400_000),
    )

    config = load_config_from_path(SCHEMA, "config.json")
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from perch.errors import ConfigurationError
from perch.validation import Validator, validate

logger = logging.getLogger("perch.config")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """ASGI adapter configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, log_format="text")
    """

    debug: bool = False

    # Logging (see perch.log.create_logger)
    log_level: str = "info"
    log_format: str = "json"

    # Limits
    max_body_size: int = 1024 * 1024  # 1 MB


@dataclass(frozen=True, slots=True)
class ConfigParam:
    """One named application config value.

    A ``default`` of ``None`` means "no default": the value must then be
    supplied or loading fails with ``'name' is required``.
    """

    name: str
    validators: tuple[Validator, ...] = ()
    default: Any = None
    description: str = ""


def apply_defaults(schema: Iterable[ConfigParam], values: Mapping[str, Any]) -> dict[str, Any]:
    """Schema defaults first, then *values* on top."""
    merged = {param.name: param.default for param in schema if param.default is not None}
    merged.update(values)
    return merged


def load_config(schema: Iterable[ConfigParam], values: Mapping[str, Any]) -> dict[str, Any]:
    """Apply defaults and check every parameter.

    Returns the merged config, including keys the schema does not
    mention. All problems are logged and raised together::

        ConfigurationError: Config is not valid:
         - 'api_base_url' is required
         - 'log_level' must be one of: 'debug', 'info', 'warn', 'error'
    """
    params = tuple(schema)
    merged = apply_defaults(params, values)
    result = validate(merged, {param.name: list(param.validators) for param in params})
    if not result:
        lines = "\n".join(f" - {message}" for message in result.messages())
        msg = f"Config is not valid:\n{lines}"
        logger.error(msg)
        raise ConfigurationError(msg)
    return merged


def load_config_from_path(schema: Iterable[ConfigParam], path: str | Path) -> dict[str, Any]:
    """Read a JSON object from *path* and pass it through ``load_config``."""
    config_path = Path(path)
    if not config_path.is_file():
        msg = f"Config file does not exist: {config_path}"
        logger.error(msg)
        raise ConfigurationError(msg)

    try:
        values = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Config file {config_path} is not valid JSON: {exc}"
        logger.error(msg)
        raise ConfigurationError(msg) from exc

    if not isinstance(values, dict):
        msg = f"Config file {config_path} must contain a JSON object."
        logger.error(msg)
        raise ConfigurationError(msg)

    return load_config(schema, values)
