"""Configuration management package."""

from .settings import Config, load_config, save_config
from .defaults import DEFAULT_CONFIG, FIELD_PARAMETER_DEFAULTS, default_parameters
from .table_map import TableMap, load_table_map, save_table_map

__all__ = [
    "Config", "load_config", "save_config",
    "DEFAULT_CONFIG", "FIELD_PARAMETER_DEFAULTS", "default_parameters",
    "TableMap", "load_table_map", "save_table_map",
]
