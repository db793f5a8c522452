"""Core domain entities, algorithms and constants."""

from .entities import (
    Card, ColorFilterMode, ColorTarget, ColorTargets, FieldReading, FieldType,
    MatchResult, MorphologyMode, PreprocessParameters, RecognitionResult, Region,
    Suit, Template,
)
from .exceptions import (
    ApplicationError, ConfigError, CorruptPersistenceError, InvalidImageError,
    NoVarianceError, RecognizerError, RequestCancelledError,
)
from .constants import APP_NAME, VERSION

__all__ = [
    "Card", "ColorFilterMode", "ColorTarget", "ColorTargets", "FieldReading", "FieldType",
    "MatchResult", "MorphologyMode", "PreprocessParameters", "RecognitionResult", "Region",
    "Suit", "Template",
    "ApplicationError", "ConfigError", "CorruptPersistenceError", "InvalidImageError",
    "NoVarianceError", "RecognizerError", "RequestCancelledError",
    "APP_NAME", "VERSION",
]
