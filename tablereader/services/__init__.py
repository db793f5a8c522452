"""Recognition services."""

from .archive_service import BadMatchArchive
from .color_service import ColorClassifier
from .template_service import TemplateFolder, TemplateLibrary
from .recognition_service import RecognitionService

__all__ = [
    "BadMatchArchive", "ColorClassifier", "TemplateFolder", "TemplateLibrary",
    "RecognitionService",
]
