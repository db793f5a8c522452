"""Configuration dataclass and loading utilities.

Provides a strongly-typed configuration object that is injected into the
recognition service instead of relying on module-level globals.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import json, os, logging

from .defaults import DEFAULT_CONFIG
from .env_config import load_environment_config
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# (min, max) inclusive; None means unbounded
_RANGES = {
    "template_width": (1, None),
    "template_height": (1, None),
    "template_threshold": (0.0, 1.0),
    "bad_match_threshold": (0.0, 1.0),
    "scan_stride": (1, None),
    "refine_radius": (0, None),
    "max_workers": (1, 64),
    "debounce_seconds": (0.0, 10.0),
    "color_tolerance": (0.0, 1.0),
    "tesseract_psm": (0, 13),
    "tesseract_timeout": (0.0, None),
}


@dataclass(slots=True)
class Config:
    # Storage
    templates_dir: str = DEFAULT_CONFIG["templates_dir"]
    bad_matches_dir: str = DEFAULT_CONFIG["bad_matches_dir"]
    table_map_path: str = DEFAULT_CONFIG["table_map_path"]

    # Template matching
    template_width: int = DEFAULT_CONFIG["template_width"]
    template_height: int = DEFAULT_CONFIG["template_height"]
    template_threshold: float = DEFAULT_CONFIG["template_threshold"]
    bad_match_threshold: float = DEFAULT_CONFIG["bad_match_threshold"]
    use_template_thresholds: bool = DEFAULT_CONFIG["use_template_thresholds"]
    scan_stride: int = DEFAULT_CONFIG["scan_stride"]
    refine_radius: int = DEFAULT_CONFIG["refine_radius"]

    # Orchestration
    max_workers: int = DEFAULT_CONFIG["max_workers"]
    debounce_seconds: float = DEFAULT_CONFIG["debounce_seconds"]
    archive_low_confidence: bool = DEFAULT_CONFIG["archive_low_confidence"]

    color_tolerance: float = DEFAULT_CONFIG["color_tolerance"]

    # Text recognition engine
    tesseract_cmd: str = DEFAULT_CONFIG["tesseract_cmd"]
    tesseract_psm: int = DEFAULT_CONFIG["tesseract_psm"]
    tesseract_timeout: float = DEFAULT_CONFIG["tesseract_timeout"]
    classifier_model: str = DEFAULT_CONFIG["classifier_model"]

    # Logging
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
    enable_file_logging: bool = DEFAULT_CONFIG["enable_file_logging"]
    structured_logging: bool = DEFAULT_CONFIG["structured_logging"]

    # Arbitrary extra values retained for forward compatibility
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def template_size(self):
        return (self.template_width, self.template_height)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        extra = d.pop("extra", {})
        d.update(extra)
        return d

    def get(self, key: str, default: Any = None) -> Any:
        if key in _field_names():
            return getattr(self, key)
        return self.extra.get(key, default)


def _field_names():
    return {f.name for f in fields(Config) if f.name != "extra"}


def validate_config_values(values: Dict[str, Any]) -> List[str]:
    """Reset out-of-range or mistyped values to their defaults in place.

    Returns the list of warnings produced.
    """
    warnings: List[str] = []
    for key, default in DEFAULT_CONFIG.items():
        value = values.get(key, default)
        try:
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ConfigError(f"{key} must be a boolean, got {value!r}")
            elif isinstance(default, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"{key} must be a number, got {value!r}")
                if isinstance(default, int) and not isinstance(default, bool):
                    value = int(value)
                lo, hi = _RANGES.get(key, (None, None))
                if (lo is not None and value < lo) or (hi is not None and value > hi):
                    raise ConfigError(f"{key}={value} outside [{lo}, {hi}]")
                values[key] = value
            elif isinstance(default, str) and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {value!r}")
        except ConfigError as e:
            warnings.append(str(e))
            logger.warning(f"{e}; using default {default!r}")
            values[key] = default
    return warnings


def load_config(path: Union[str, Path] = "config.json",
                environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from a JSON file, environment overrides on top.

    Missing or unreadable files fall back to defaults; invalid values are
    reset to their defaults with a warning.
    """
    data: Dict[str, Any] = {}
    path = str(path)

    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                data = loaded
                logger.info(f"Loaded configuration from '{path}'")
            else:
                logger.error(f"Configuration file '{path}' does not contain a JSON object, using defaults")
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse configuration file '{path}': {e}. Using defaults.")
        except OSError as e:
            logger.error(f"Cannot read configuration file '{path}': {e}. Using defaults.")
    else:
        logger.info(f"Configuration file '{path}' does not exist. Using defaults.")

    merged = {**DEFAULT_CONFIG, **data}
    env_config = load_environment_config(environ)
    merged.update(env_config.overrides)
    validate_config_values(merged)

    names = _field_names()
    extra = {k: v for k, v in merged.items() if k not in names}
    if "extra" in extra:
        extra.update(extra.pop("extra") or {})
    if extra:
        logger.info(f"Found extra configuration keys: {sorted(extra)}")
    return Config(**{k: merged[k] for k in names}, extra=extra)


def save_config(cfg: Config, path: Union[str, Path] = "config.json") -> None:
    """Write the configuration as indented JSON."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to '{path}'")
    except OSError as e:
        raise ConfigError(f"Cannot write configuration to '{path}': {e}") from e
