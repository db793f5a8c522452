"""Text recognizer backed by the Tesseract engine via pytesseract."""
import logging
from typing import Dict, Any, Optional

import numpy as np
from PIL import Image

from .base_backend import TextRecognizer
from ..core.entities import FieldType, RecognitionResult
from ..core.exceptions import RecognizerError

logger = logging.getLogger(__name__)

# Try to import pytesseract
HAS_PYTESSERACT = False
try:
    import pytesseract
    HAS_PYTESSERACT = True
except ImportError:
    HAS_PYTESSERACT = False

# Character whitelists per field
WHITELISTS = {
    FieldType.PLAYER_BET: "0123456789.,$Bb",
    FieldType.PLAYER_BALANCE: "0123456789.,$Bb",
    FieldType.TABLE_POT: "0123456789.,$Bb",
    FieldType.CARD_RANK: "AKQJT1098765432",
    FieldType.PLAYER_ACTION: "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz- ",
}


def to_pil_image(image: np.ndarray) -> Image.Image:
    """Convert an OpenCV BGR/gray uint8 array to a PIL image."""
    if image.ndim == 2:
        return Image.fromarray(image)
    return Image.fromarray(np.ascontiguousarray(image[:, :, 2::-1]))


class TesseractRecognizer(TextRecognizer):
    """Single-line OCR with per-field character whitelists."""

    def __init__(self,
                 tesseract_cmd: Optional[str] = None,
                 psm: int = 7,
                 timeout: float = 2.0,
                 language: str = "eng",
                 use_whitelists: bool = True):
        if not HAS_PYTESSERACT:
            raise RecognizerError("pytesseract not installed. Cannot use Tesseract backend.")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.psm = psm
        self.timeout = timeout
        self.language = language
        self.use_whitelists = use_whitelists

    def build_config(self, field_type: FieldType = FieldType.BASE, psm: Optional[int] = None) -> str:
        config = f"--oem 1 --psm {self.psm if psm is None else psm}"
        whitelist = WHITELISTS.get(field_type) if self.use_whitelists else None
        if whitelist:
            config += f" -c tessedit_char_whitelist={whitelist.replace(' ', '')}"
        return config

    def recognize(self, image: np.ndarray, field_type: FieldType = FieldType.BASE,
                  psm: Optional[int] = None) -> RecognitionResult:
        try:
            data = pytesseract.image_to_data(
                to_pil_image(image),
                lang=self.language,
                config=self.build_config(field_type, psm),
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise RecognizerError(f"Tesseract failed: {e}") from e
        except RuntimeError as e:
            # pytesseract signals timeouts with a plain RuntimeError
            raise RecognizerError(f"Tesseract timed out after {self.timeout}s") from e

        words, confidences = [], []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            text = (text or "").strip()
            conf = float(conf)
            if not text or conf < 0:
                continue
            words.append(text)
            confidences.append(conf)

        if not words:
            return RecognitionResult(text=None, confidence=0.0, field_type=field_type)
        confidence = min(max(sum(confidences) / len(confidences) / 100.0, 0.0), 1.0)
        return RecognitionResult(text=" ".join(words), confidence=confidence, field_type=field_type)

    def get_info(self) -> Dict[str, Any]:
        return {
            'backend': 'tesseract',
            'psm': self.psm,
            'timeout': self.timeout,
            'language': self.language,
        }


class SingleCharacterRecognizer(TesseractRecognizer):
    """Tesseract in single-character mode, used as the card-rank fallback."""

    def __init__(self, tesseract_cmd: Optional[str] = None, timeout: float = 2.0):
        super().__init__(tesseract_cmd=tesseract_cmd, psm=10, timeout=timeout)
