"""Card classifier backend using an Ultralytics classification model."""
import logging
from typing import Dict, Any, Optional
import numpy as np
from .base_backend import ClassifierBackend
from ..core.entities import FieldType, RecognitionResult
from ..core.exceptions import RecognizerError

logger = logging.getLogger(__name__)

# Try to import ultralytics
HAS_ULTRALYTICS = False
try:
    from ultralytics import YOLO
    HAS_ULTRALYTICS = True
except ImportError:
    HAS_ULTRALYTICS = False

class YoloCardClassifier(ClassifierBackend):
    """Top-1 label of a YOLO ``-cls`` model trained on card crops."""

    def __init__(self, model_path_or_name: Optional[str] = None, image_size: int = 64):
        super().__init__()
        self.model = None
        self.model_path = None
        self.image_size = image_size
        self.model_info: Dict[str, Any] = {}
        if model_path_or_name:
            self.load_model(model_path_or_name)

    def load_model(self, model_path_or_name: str) -> bool:
        """Load a classification model from path or model name."""
        if not HAS_ULTRALYTICS:
            raise RecognizerError("Ultralytics not installed. Cannot use YOLO classifier.")

        try:
            self.model = YOLO(model_path_or_name, task="classify")
            self.model_path = model_path_or_name
            self.is_loaded = True
            self.model_info = {
                'backend': 'ultralytics',
                'model_type': 'YOLO-cls',
                'model_path': model_path_or_name,
                'classes': len(getattr(self.model, 'names', {}) or {}),
            }
            logger.info(f"Loaded card classifier: {model_path_or_name}")
            return True
        except Exception as e:
            self.is_loaded = False
            raise RecognizerError(f"Failed to load classifier {model_path_or_name}: {e}") from e

    def classify(self, image: np.ndarray) -> RecognitionResult:
        if not self.is_loaded or self.model is None:
            raise RecognizerError("No classifier model loaded")

        try:
            results = self.model(image, imgsz=self.image_size, verbose=False)
        except Exception as e:
            raise RecognizerError(f"Classifier inference failed: {e}") from e

        if not results or getattr(results[0], 'probs', None) is None:
            return RecognitionResult(text=None, confidence=0.0, field_type=FieldType.CARD_TEMPLATE)

        result = results[0]
        top1 = int(result.probs.top1)
        confidence = float(result.probs.top1conf)
        label = result.names[top1]
        return RecognitionResult(text=label, confidence=confidence, field_type=FieldType.CARD_TEMPLATE)

    def get_model_info(self) -> Dict[str, Any]:
        return dict(self.model_info)
