"""Recognizer and classifier backends.

Import ``tablereader.backends.yolo_backend`` explicitly for the card
classifier.
"""

from .base_backend import ClassifierBackend, TextRecognizer
from .tesseract_backend import SingleCharacterRecognizer, TesseractRecognizer

__all__ = [
    "ClassifierBackend", "TextRecognizer",
    "SingleCharacterRecognizer", "TesseractRecognizer",
]
