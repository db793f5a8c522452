"""Environment variable overrides.

Any key of ``DEFAULT_CONFIG`` can be overridden with an upper-cased
``TABLEREADER_`` variable, e.g. ``TABLEREADER_MAX_WORKERS=2`` or
``TABLEREADER_TESSERACT_CMD=/usr/local/bin/tesseract``. Values are
converted to the type of the default.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .defaults import DEFAULT_CONFIG
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TABLEREADER_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class EnvironmentConfig:
    """Immutable view of the overrides found in the environment."""
    overrides: Dict[str, Any] = field(default_factory=dict)
    rejected: List[str] = field(default_factory=list)

    @property
    def has_overrides(self) -> bool:
        return bool(self.overrides)


def parse_env_value(key: str, raw: str) -> Any:
    """Convert `raw` to the type of ``DEFAULT_CONFIG[key]``."""
    default = DEFAULT_CONFIG[key]
    text = raw.strip()
    try:
        if isinstance(default, bool):
            lowered = text.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if isinstance(default, int):
            return int(text)
        if isinstance(default, float):
            return float(text)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{key.upper()}: {e}") from e
    return text


def load_environment_config(environ: Optional[Mapping[str, str]] = None) -> EnvironmentConfig:
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    rejected: List[str] = []
    for key in DEFAULT_CONFIG:
        name = ENV_PREFIX + key.upper()
        if name not in environ:
            continue
        try:
            overrides[key] = parse_env_value(key, environ[name])
        except ConfigError as e:
            logger.warning(f"Ignoring environment override: {e}")
            rejected.append(name)
    if overrides:
        logger.debug(f"Environment overrides: {sorted(overrides)}")
    return EnvironmentConfig(overrides=overrides, rejected=rejected)
