"""Utility functions package."""

from .image_utils import (
    average_color, crop_region, hex_string, resize_to_cover, to_grayscale_float,
)
from .validation import FieldValidator, validate_field

__all__ = [
    "average_color", "crop_region", "hex_string", "resize_to_cover", "to_grayscale_float",
    "FieldValidator", "validate_field",
]
