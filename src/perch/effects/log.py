"""The ``logger`` effect — a configured logger shared by every request.

Config keys:
    log_level  -- ``"debug"``, ``"info"`` (default), ``"warn"``, ...
    log_format -- ``"json"`` (default) or ``"text"``

Each distinct ``(log_level, log_format)`` pair gets its own child of the
``perch.app`` logger, so a route that overrides ``log_level`` does not
change the level seen by other routes.
"""

import functools
import logging
from collections.abc import Mapping
from typing import Any

from perch.context import RequestContext
from perch.effects.protocol import EffectInstantiator
from perch.errors import ConfigurationError
from perch.log import LOGGER_NAME, create_logger, parse_level


@functools.cache
def _shared_logger(level: int, fmt: str) -> logging.Logger:
    name = f"{LOGGER_NAME}.{fmt}.{logging.getLevelName(level).lower()}"
    return create_logger(level, fmt=fmt, name=name)


def logger(config: Mapping[str, Any]) -> EffectInstantiator:
    try:
        level = parse_level(config.get("log_level", "info"))
        log = _shared_logger(level, config.get("log_format", "json"))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    def instantiate(ctx: RequestContext) -> Any:
        return log

    return instantiate
