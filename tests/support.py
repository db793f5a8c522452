"""Synthetic images and fake recognizer backends shared by the tests."""
import threading
from typing import List, Optional, Tuple, Union

import numpy as np

from tablereader.backends.base_backend import ClassifierBackend, TextRecognizer
from tablereader.core.entities import FieldType, RecognitionResult
from tablereader.core.exceptions import RecognizerError


def make_checkerboard(width: int = 35, height: int = 50, cell: int = 5) -> np.ndarray:
    """Black/white checkerboard as a BGR uint8 image."""
    ys, xs = np.mgrid[0:height, 0:width]
    board = (((xs // cell) + (ys // cell)) % 2 * 255).astype(np.uint8)
    return np.dstack([board, board, board])


def make_block_pattern(width: int = 35, height: int = 50, block: int = 6,
                       seed: int = 7) -> np.ndarray:
    """Non-periodic pattern of random gray blocks as a BGR uint8 image."""
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 256, size=(height // block + 1, width // block + 1), dtype=np.uint8)
    gray = np.kron(cells, np.ones((block, block), dtype=np.uint8))[:height, :width]
    return np.dstack([gray, gray, gray])


def paste(canvas: np.ndarray, patch: np.ndarray, x: int, y: int) -> np.ndarray:
    h, w = patch.shape[:2]
    canvas[y:y + h, x:x + w] = patch
    return canvas


class FakeRecognizer(TextRecognizer):
    """Returns scripted results in order (the last one repeats) and counts calls."""

    def __init__(self, results: List[Union[Tuple[Optional[str], float], Exception]],
                 delay: float = 0.0):
        self.results = list(results)
        self.delay = delay
        self.calls = 0
        self.images = []
        self._lock = threading.Lock()

    def recognize(self, image, field_type=FieldType.BASE):
        with self._lock:
            index = min(self.calls, len(self.results) - 1)
            self.calls += 1
            self.images.append(image)
        if self.delay:
            threading.Event().wait(self.delay)
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        text, confidence = result
        return RecognitionResult(text=text, confidence=confidence, field_type=field_type)


class FakeClassifier(ClassifierBackend):
    def __init__(self, label: Optional[str], confidence: float = 0.9,
                 error: Union[bool, Exception] = False):
        super().__init__()
        self.label = label
        self.confidence = confidence
        self.error = error
        self.is_loaded = True

    def load_model(self, model_path_or_name):
        return True

    def classify(self, image):
        if isinstance(self.error, Exception):
            raise self.error
        if self.error:
            raise RecognizerError("model exploded")
        return RecognitionResult(text=self.label, confidence=self.confidence,
                                 field_type=FieldType.CARD_TEMPLATE)
