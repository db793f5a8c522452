"""Table map persistence: regions, per-field preprocessing and colour targets.

A table map is stored as one JSON document::

    {
      "regions": [{"id": ..., "name": ..., "x": ..., "y": ..., "width": ..., "height": ...}],
      "ocr_configs": {"player_bet": {...PreprocessParameters...}, ...},
      "rgb_targets": {"dealer_button": [r, g, b], "card_back": [...], "suits": {"h": [...]}}
    }

Older maps were a bare list of regions; those still load and get default
configs and targets.
"""
from __future__ import annotations
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from .defaults import FIELD_PARAMETER_DEFAULTS
from ..core.entities import ColorTargets, FieldType, PreprocessParameters, Region
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)


def _default_configs() -> Dict[FieldType, PreprocessParameters]:
    return dict(FIELD_PARAMETER_DEFAULTS)


@dataclass
class TableMap:
    regions: List[Region] = field(default_factory=list)
    ocr_configs: Dict[FieldType, PreprocessParameters] = field(default_factory=_default_configs)
    rgb_targets: ColorTargets = field(default_factory=ColorTargets)

    def region(self, name: str) -> Region:
        for r in self.regions:
            if r.name == name:
                return r
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "regions": [r.to_dict() for r in self.regions],
            "ocr_configs": {ft.value: p.to_dict() for ft, p in self.ocr_configs.items()},
            "rgb_targets": self.rgb_targets.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> TableMap:
        """Parse either the current document or the legacy list-of-regions format."""
        try:
            if isinstance(data, list):
                logger.warning("Loaded legacy table map, using default preprocessing and colour targets")
                return cls(regions=[Region.from_dict(r) for r in data])
            if not isinstance(data, dict):
                raise ConfigError(f"Table map must be an object or a list, got {type(data).__name__}")

            configs = _default_configs()
            for key, params in (data.get("ocr_configs") or {}).items():
                field_type = FieldType(key)
                configs[field_type] = PreprocessParameters.from_dict(
                    params, base=FIELD_PARAMETER_DEFAULTS.get(field_type))
            return cls(
                regions=[Region.from_dict(r) for r in data.get("regions") or []],
                ocr_configs=configs,
                rgb_targets=ColorTargets.from_dict(data.get("rgb_targets") or {}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid table map: {e}") from e


def save_table_map(table_map: TableMap, path: Union[str, Path]) -> Path:
    """Write the map atomically: temp file in the same directory, then rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.parent / f".{target.name}.tmp.{int(time.time() * 1000000)}"
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(table_map.to_dict(), f, indent=2, sort_keys=True, ensure_ascii=False)
        os.replace(temp_path, target)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise ConfigError(f"Failed to save table map to {target}: {e}") from e
    logger.info(f"Saved table map with {len(table_map.regions)} regions to {target}")
    return target


def load_table_map(path: Union[str, Path]) -> TableMap:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read table map {path}: {e}") from e
    table_map = TableMap.from_dict(data)
    logger.info(f"Loaded table map with {len(table_map.regions)} regions from {path}")
    return table_map
