"""Recognizer backend interfaces."""
from abc import ABC, abstractmethod
from typing import Dict, Any
import numpy as np
from ..core.entities import FieldType, RecognitionResult

class TextRecognizer(ABC):
    """Reads text from a preprocessed (binarized) image."""

    @abstractmethod
    def recognize(self, image: np.ndarray, field_type: FieldType = FieldType.BASE) -> RecognitionResult:
        """Return the raw text and a confidence in [0, 1].

        Implementations raise RecognizerError when the engine fails.
        """
        pass

    def get_info(self) -> Dict[str, Any]:
        return {'backend': type(self).__name__}


class ClassifierBackend(ABC):
    """Labels a card crop, e.g. ``"Ah"`` or ``"empty"``."""

    def __init__(self):
        self.is_loaded = False

    @abstractmethod
    def load_model(self, model_path_or_name: str) -> bool:
        """Load a model from path or model name."""
        pass

    @abstractmethod
    def classify(self, image: np.ndarray) -> RecognitionResult:
        """Return the top label in ``text`` with its confidence."""
        pass

    def is_model_loaded(self) -> bool:
        return self.is_loaded
