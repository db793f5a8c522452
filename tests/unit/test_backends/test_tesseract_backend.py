"""Unit tests for the Tesseract recognizer with the engine mocked out."""
from unittest.mock import patch

import pytest
import numpy as np

pytesseract = pytest.importorskip("pytesseract")

from tablereader.backends.tesseract_backend import (
    SingleCharacterRecognizer, TesseractRecognizer, to_pil_image,
)
from tablereader.core.entities import FieldType
from tablereader.core.exceptions import RecognizerError

IMAGE_TO_DATA = "tablereader.backends.tesseract_backend.pytesseract.image_to_data"


@pytest.fixture
def recognizer():
    return TesseractRecognizer()


@pytest.fixture
def image():
    return np.zeros((20, 60, 3), dtype=np.uint8)


class TestTesseractRecognizer:
    """Test suite for TesseractRecognizer."""

    def test_words_and_mean_confidence(self, recognizer, image):
        data = {"text": ["", "12", "BB", " "], "conf": ["-1", "90", 80.0, "-1"]}
        with patch(IMAGE_TO_DATA, return_value=data) as mock_ocr:
            result = recognizer.recognize(image, FieldType.PLAYER_BALANCE)

        assert result.text == "12 BB"
        assert result.confidence == pytest.approx(0.85)
        assert result.field_type is FieldType.PLAYER_BALANCE
        kwargs = mock_ocr.call_args.kwargs
        assert kwargs["timeout"] == 2.0
        assert "tessedit_char_whitelist=0123456789.,$Bb" in kwargs["config"]

    def test_no_words(self, recognizer, image):
        with patch(IMAGE_TO_DATA, return_value={"text": [""], "conf": ["-1"]}):
            result = recognizer.recognize(image)
        assert result.text is None
        assert result.confidence == 0.0

    def test_engine_error(self, recognizer, image):
        with patch(IMAGE_TO_DATA, side_effect=pytesseract.TesseractError(1, "bad image")):
            with pytest.raises(RecognizerError):
                recognizer.recognize(image)

    def test_missing_binary(self, recognizer, image):
        with patch(IMAGE_TO_DATA, side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(RecognizerError):
                recognizer.recognize(image)

    def test_timeout(self, recognizer, image):
        with patch(IMAGE_TO_DATA, side_effect=RuntimeError("Tesseract process timeout")):
            with pytest.raises(RecognizerError, match="timed out"):
                recognizer.recognize(image)

    def test_build_config(self, recognizer):
        assert recognizer.build_config() == "--oem 1 --psm 7"
        config = recognizer.build_config(FieldType.PLAYER_ACTION)
        assert " " not in config.split("=", 1)[1]
        assert recognizer.build_config(FieldType.CARD_RANK, psm=10).startswith("--oem 1 --psm 10")

    def test_whitelists_can_be_disabled(self):
        assert "whitelist" not in TesseractRecognizer(use_whitelists=False).build_config(FieldType.PLAYER_BET)

    def test_single_character_mode(self):
        recognizer = SingleCharacterRecognizer(timeout=1.0)
        assert recognizer.psm == 10
        assert recognizer.get_info()["timeout"] == 1.0

    def test_custom_binary(self, monkeypatch):
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")
        TesseractRecognizer(tesseract_cmd="/opt/bin/tesseract")
        assert pytesseract.pytesseract.tesseract_cmd == "/opt/bin/tesseract"


def test_to_pil_image_swaps_channels():
    bgr = np.zeros((1, 1, 3), dtype=np.uint8)
    bgr[0, 0] = (10, 20, 30)
    assert to_pil_image(bgr).getpixel((0, 0)) == (30, 20, 10)
    gray = np.full((2, 2), 7, dtype=np.uint8)
    assert to_pil_image(gray).mode == "L"
