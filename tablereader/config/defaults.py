"""Default configuration values."""

from typing import Any, Dict

from ..core.constants import (
    DEFAULT_BAD_MATCH_THRESHOLD, DEFAULT_COLOR_TOLERANCE, DEFAULT_DEBOUNCE_SECONDS, DEFAULT_MAX_WORKERS,
    DEFAULT_REFINE_RADIUS, DEFAULT_SCAN_STRIDE, DEFAULT_TEMPLATE_SIZE, DEFAULT_TEMPLATE_THRESHOLD,
)
from ..core.entities import ColorFilterMode, FieldType, PreprocessParameters

DEFAULT_CONFIG: Dict[str, Any] = {
    # Storage
    "templates_dir": "data/templates",
    "bad_matches_dir": "data/bad_matches",
    "table_map_path": "data/table_map.json",

    # Template matching
    "template_width": DEFAULT_TEMPLATE_SIZE[0],
    "template_height": DEFAULT_TEMPLATE_SIZE[1],
    "template_threshold": DEFAULT_TEMPLATE_THRESHOLD,
    "bad_match_threshold": DEFAULT_BAD_MATCH_THRESHOLD,
    "use_template_thresholds": False,
    "scan_stride": DEFAULT_SCAN_STRIDE,
    "refine_radius": DEFAULT_REFINE_RADIUS,

    # Orchestration
    "max_workers": DEFAULT_MAX_WORKERS,
    "debounce_seconds": DEFAULT_DEBOUNCE_SECONDS,
    "archive_low_confidence": True,

    # Colour targets
    "color_tolerance": DEFAULT_COLOR_TOLERANCE,

    # Text recognition engine
    "tesseract_cmd": "",  # Empty means pytesseract's default lookup
    "tesseract_psm": 7,
    "tesseract_timeout": 2.0,
    "classifier_model": "",

    # Debug and Logging Settings
    "log_level": "INFO",
    "log_dir": "logs",
    "enable_file_logging": False,
    "structured_logging": False,
}

# Per-field preprocessing presets
_BET_LIKE = PreprocessParameters(
    scale=6.0, sharpness=0.4, contrast=1.5, brightness=0.0, saturation=0.0,
    blur_radius=2.0, threshold=0.55, morph_radius=0.5,
    color_filter_mode=ColorFilterMode.HSV_FILTER,
    hsv_hue_min=60.0, hsv_hue_max=180.0, hsv_sat_min=0.30, hsv_sat_max=1.0,
)

FIELD_PARAMETER_DEFAULTS: Dict[FieldType, PreprocessParameters] = {
    FieldType.BASE: PreprocessParameters(),
    FieldType.PLAYER_BET: _BET_LIKE,
    FieldType.CARD_RANK: _BET_LIKE,
    FieldType.PLAYER_BALANCE: PreprocessParameters(
        scale=4.0, contrast=1.6, brightness=0.3, blur_radius=0.5, threshold=0.20,
        morph_radius=0.10, color_filter_mode=ColorFilterMode.COLOR_DISTANCE,
        color_distance_threshold=0.40,
    ),
    FieldType.PLAYER_ACTION: PreprocessParameters(
        scale=4.0, contrast=1.4, brightness=0.4, blur_radius=0.5, threshold=0.50,
        morph_radius=0.10, color_filter_mode=ColorFilterMode.COLOR_DISTANCE,
        color_distance_threshold=0.40,
    ),
    FieldType.TABLE_POT: PreprocessParameters(
        scale=4.0, contrast=1.6, brightness=0.3, blur_radius=0.5, threshold=0.25,
        morph_radius=0.10, color_filter_mode=ColorFilterMode.COLOR_DISTANCE,
        color_distance_threshold=0.80,
    ),
    FieldType.CARD_TEMPLATE: PreprocessParameters(
        scale=1.0, sharpness=0.0, contrast=3.0, brightness=-0.2, saturation=0.0,
        blur_radius=0.0, threshold=0.4, morph_radius=0.0,
    ),
}


def default_parameters(field_type: FieldType) -> PreprocessParameters:
    return FIELD_PARAMETER_DEFAULTS.get(field_type, FIELD_PARAMETER_DEFAULTS[FieldType.BASE])
