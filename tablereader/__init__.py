"""
Region recognition engine for poker-table screenshots.
"""

__version__ = "1.0.0"

from .config.settings import Config, load_config, save_config
from .core.entities import (
    Card, FieldReading, FieldType, MatchResult, PreprocessParameters, RecognitionResult,
    Region, Template,
)
from .core.matching import best_match
from .core.preprocessing import preprocess
from .core.templates import create_template, load_template, save_template
from .services.recognition_service import RecognitionService
from .utils.validation import FieldValidator, validate_field

__all__ = [
    "Config", "load_config", "save_config",
    "Card", "FieldReading", "FieldType", "MatchResult", "PreprocessParameters",
    "RecognitionResult", "Region", "Template",
    "best_match", "preprocess", "create_template", "load_template", "save_template",
    "RecognitionService", "FieldValidator", "validate_field",
]
