"""Recognition orchestration: crop, preprocess, recognize, validate, archive.

Requests are keyed by ``(field type, region id)``. A new request for a key
supersedes any pending or running one, requests are debounced, and work
runs on a small shared thread pool. Callers get a
:class:`concurrent.futures.Future` that resolves to a
:class:`~tablereader.core.entities.FieldReading`, or is cancelled when a
newer request for the same key replaced it.
"""
from __future__ import annotations
import concurrent.futures
import logging
import os
import threading
from typing import Dict, Mapping, Optional

import numpy as np

from ..backends.base_backend import ClassifierBackend, TextRecognizer
from ..config.defaults import FIELD_PARAMETER_DEFAULTS, default_parameters
from ..config.settings import Config
from ..config.table_map import TableMap, load_table_map
from ..core.entities import (
    Card, FieldReading, FieldType, MatchResult, PreprocessParameters, RecognitionResult, Region,
)
from ..core.exceptions import InvalidImageError, RecognizerError
from ..core.logging_config import CorrelationContext, configure_logging
from ..core.preprocessing import preprocess
from ..core.threading_manager import CancellationToken, DebouncedExecutor
from ..utils.image_utils import average_color, crop_region, hex_string
from ..utils.validation import FieldValidator
from .archive_service import BadMatchArchive
from .color_service import ColorClassifier
from .template_service import TemplateFolder, TemplateLibrary

logger = logging.getLogger(__name__)


class RecognitionService:
    """Turns screenshot regions into canonical field values."""

    def __init__(self,
                 text_recognizer: Optional[TextRecognizer] = None,
                 config: Optional[Config] = None,
                 field_parameters: Optional[Mapping[FieldType, PreprocessParameters]] = None,
                 classifier: Optional[ClassifierBackend] = None,
                 fallback_recognizer: Optional[TextRecognizer] = None,
                 template_library: Optional[TemplateLibrary] = None,
                 archive: Optional[BadMatchArchive] = None,
                 color_classifier: Optional[ColorClassifier] = None):
        self.config = config or Config()
        self.text_recognizer = text_recognizer
        self.fallback_recognizer = fallback_recognizer
        self.classifier = classifier
        self.template_library = template_library
        if archive is None and self.config.archive_low_confidence:
            archive = BadMatchArchive(self.config.bad_matches_dir)
        self.archive = archive
        self.colors = color_classifier or ColorClassifier(tolerance=self.config.color_tolerance)

        self._params_lock = threading.Lock()
        self._parameters: Dict[FieldType, PreprocessParameters] = dict(FIELD_PARAMETER_DEFAULTS)
        if field_parameters:
            self._parameters.update(field_parameters)

        self.executor = DebouncedExecutor(
            max_workers=self.config.max_workers,
            debounce_seconds=self.config.debounce_seconds,
        )

    @classmethod
    def from_config(cls, config: Config,
                    folder: TemplateFolder = TemplateFolder.BOARD) -> RecognitionService:
        """Wire the Tesseract recognizers, the template library and, when
        ``classifier_model`` is set, the card classifier.

        Also configures package logging from `config` and applies the table
        map at ``config.table_map_path`` when that file exists.
        """
        from ..backends.tesseract_backend import SingleCharacterRecognizer, TesseractRecognizer

        configure_logging(
            log_level=config.log_level,
            log_dir=config.log_dir,
            enable_file_logging=config.enable_file_logging,
            structured_logging=config.structured_logging,
        )

        recognizer = TesseractRecognizer(
            tesseract_cmd=config.tesseract_cmd or None,
            psm=config.tesseract_psm,
            timeout=config.tesseract_timeout,
        )
        fallback = SingleCharacterRecognizer(
            tesseract_cmd=config.tesseract_cmd or None,
            timeout=config.tesseract_timeout,
        )
        library = TemplateLibrary(
            base_dir=config.templates_dir,
            folder=folder,
            template_size=config.template_size,
            threshold=config.template_threshold,
        )
        library.load()

        classifier = None
        if config.classifier_model:
            from ..backends.yolo_backend import YoloCardClassifier
            classifier = YoloCardClassifier(config.classifier_model)

        service = cls(text_recognizer=recognizer, config=config, classifier=classifier,
                      fallback_recognizer=fallback, template_library=library)
        if os.path.isfile(config.table_map_path):
            service.apply_table_map(load_table_map(config.table_map_path))
        return service

    # Parameters

    def get_parameters(self, field_type: FieldType) -> PreprocessParameters:
        with self._params_lock:
            return self._parameters.get(field_type) or default_parameters(field_type)

    def update_parameters(self, field_type: FieldType, params: PreprocessParameters) -> None:
        with self._params_lock:
            self._parameters[field_type] = params
        logger.debug(f"Updated preprocessing parameters for {field_type.value}")

    def apply_table_map(self, table_map: TableMap) -> None:
        """Adopt the preprocessing parameters and colour targets of a table map."""
        with self._params_lock:
            self._parameters.update(table_map.ocr_configs)
        self.colors.set_targets(table_map.rgb_targets)

    # Asynchronous entry points

    def submit(self, field_type: FieldType, image: np.ndarray,
               region: Region) -> concurrent.futures.Future:
        """Schedule recognition of `region`; supersedes older requests for it.

        The region is cropped immediately so later changes to `image` do
        not affect the request.

        Raises:
            InvalidImageError: the image is empty or the region lies
                entirely outside it.
        """
        crop = self._crop(image, region)
        key = (field_type, region.id)
        return self.executor.submit(key, self._process, field_type, crop, region)

    def read_player_bet(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.PLAYER_BET, image, region)

    def read_player_balance(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.PLAYER_BALANCE, image, region)

    def read_player_action(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.PLAYER_ACTION, image, region)

    def read_table_pot(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.TABLE_POT, image, region)

    def read_card_rank(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.CARD_RANK, image, region)

    def match_card_template(self, image: np.ndarray, region: Region) -> concurrent.futures.Future:
        return self.submit(FieldType.CARD_TEMPLATE, image, region)

    # Synchronous pipeline

    def read_field(self, field_type: FieldType, image: np.ndarray, region: Region,
                   token: Optional[CancellationToken] = None) -> FieldReading:
        """Run one recognition on the calling thread."""
        return self._process(field_type, self._crop(image, region), region, token=token)

    def _crop(self, image: np.ndarray, region: Region) -> np.ndarray:
        crop = crop_region(image, region)
        if crop is None:
            raise InvalidImageError(
                f"Region '{region.name}' ({region.x},{region.y} {region.width}x{region.height}) "
                f"is outside the image")
        return crop

    def _process(self, field_type: FieldType, crop: np.ndarray, region: Region,
                 token: Optional[CancellationToken] = None) -> FieldReading:
        token = token or CancellationToken()
        token.raise_if_cancelled()

        with CorrelationContext():
            logger.debug(f"Recognizing {field_type.value} in region '{region.name}'")
            if field_type == FieldType.CARD_TEMPLATE:
                return self._match_template(crop, region, token)

            processed = preprocess(crop, self.get_parameters(field_type))
            token.raise_if_cancelled()
            raw = self._recognize(self.text_recognizer, processed, field_type)
            value = FieldValidator.validate(field_type, raw.text)

            if (field_type == FieldType.CARD_RANK and self.fallback_recognizer is not None
                    and not FieldValidator.is_card_rank(value)):
                logger.debug(f"Primary recognizer gave {value!r}, trying fallback")
                fallback_raw = self._recognize(self.fallback_recognizer, processed, field_type)
                fallback_value = FieldValidator.validate(field_type, fallback_raw.text)
                if FieldValidator.is_card_rank(fallback_value) or not value:
                    raw, value = fallback_raw, fallback_value
            token.raise_if_cancelled()

            archived = self._archive_if_low(field_type, processed, raw, self.config.bad_match_threshold,
                                            region, crop)
            return FieldReading(field_type=field_type, region_id=region.id, value=value, raw=raw,
                                preview=processed, archived=archived)

    def _recognize(self, recognizer: Optional[TextRecognizer], processed: np.ndarray,
                   field_type: FieldType) -> RecognitionResult:
        """Recognizer failures become an empty result with zero confidence."""
        if recognizer is None:
            logger.warning(f"No text recognizer configured for {field_type.value}")
            return RecognitionResult(text=None, confidence=0.0, field_type=field_type)
        try:
            result = recognizer.recognize(processed, field_type)
        except RecognizerError as e:
            logger.warning(f"Recognizer failed for {field_type.value}: {e}")
            return RecognitionResult(text=None, confidence=0.0, field_type=field_type)
        except Exception as e:
            logger.warning(f"Recognizer raised for {field_type.value}: {e}", exc_info=True)
            return RecognitionResult(text=None, confidence=0.0, field_type=field_type)
        result.field_type = field_type
        return result

    def _match_template(self, crop: np.ndarray, region: Region,
                        token: CancellationToken) -> FieldReading:
        library = self.template_library
        if library is None or len(library.bank) == 0:
            logger.warning("Template matching requested but no templates are loaded")
            raw = RecognitionResult(text=None, confidence=0.0, field_type=FieldType.CARD_TEMPLATE)
            return FieldReading(field_type=FieldType.CARD_TEMPLATE, region_id=region.id,
                                value="", raw=raw)

        match, processed = library.match(crop, self.config.scan_stride, self.config.refine_radius)
        token.raise_if_cancelled()

        if match is None:
            logger.info(f"No template match for region '{region.name}'")
            raw = RecognitionResult(text=None, confidence=0.0, field_type=FieldType.CARD_TEMPLATE)
            return FieldReading(field_type=FieldType.CARD_TEMPLATE, region_id=region.id,
                                value="", raw=raw, preview=processed)

        logger.debug(f"Match {match.label} ({match.score:.1%}) for region '{region.name}'")
        raw = RecognitionResult(text=match.label, confidence=match.score,
                                field_type=FieldType.CARD_TEMPLATE)
        archived = self._archive_if_low(FieldType.CARD_TEMPLATE, processed, raw,
                                        self._match_threshold(match), region, crop, match)
        return FieldReading(field_type=FieldType.CARD_TEMPLATE, region_id=region.id,
                            value=match.label, raw=raw, preview=processed, archived=archived,
                            match=match, card=Card.parse(match.label))

    def _match_threshold(self, match: MatchResult) -> float:
        if self.config.use_template_thresholds and self.template_library is not None:
            template = self.template_library.bank.get(match.template_id)
            if template is not None:
                return template.threshold
        return self.config.bad_match_threshold

    def _archive_if_low(self, field_type: FieldType, processed: np.ndarray,
                        raw: RecognitionResult, threshold: float, region: Region,
                        crop: Optional[np.ndarray] = None,
                        match: Optional[MatchResult] = None) -> bool:
        """Archive results that exist but fall below `threshold`."""
        if raw.text is None or raw.confidence >= threshold:
            return False
        logger.warning(f"Low confidence {field_type.value} result {raw.text!r} "
                       f"({raw.confidence:.2f} < {threshold:.2f}) in region '{region.name}'")
        if self.archive is None:
            return False
        return self.archive.archive(field_type, processed, raw, threshold,
                                    region=region, original=crop, match=match) is not None

    # Card classification and colour checks

    def classify_card(self, image: np.ndarray, region: Region) -> Optional[Card]:
        """Label a card crop with the classifier backend; None for no card."""
        if self.classifier is None:
            raise RecognizerError("No card classifier configured")
        crop = self._crop(image, region)
        try:
            result = self.classifier.classify(crop)
        except RecognizerError as e:
            logger.warning(f"Card classifier failed for region '{region.name}': {e}")
            return None
        except Exception as e:
            logger.warning(f"Card classifier raised for region '{region.name}': {e}", exc_info=True)
            return None
        return Card.parse(result.text)

    def check_dealer_button(self, image: np.ndarray, region: Region) -> bool:
        return self.colors.check_dealer_button(image, region)

    def check_card_back(self, image: np.ndarray, region: Region) -> bool:
        return self.colors.check_card_back(image, region)

    def detect_suit(self, image: np.ndarray, region: Region):
        return self.colors.detect_suit(image, region)

    # Previews

    def cropped_image(self, image: np.ndarray, region: Region) -> Optional[np.ndarray]:
        return crop_region(image, region)

    def preprocessed_image(self, image: np.ndarray, region: Region,
                           field_type: FieldType = FieldType.BASE) -> Optional[np.ndarray]:
        crop = crop_region(image, region)
        if crop is None:
            return None
        if field_type == FieldType.CARD_TEMPLATE and self.template_library is not None:
            return self.template_library.prepare(crop)
        return preprocess(crop, self.get_parameters(field_type))

    def average_color_string(self, image: np.ndarray, region: Region) -> str:
        crop = crop_region(image, region)
        color = average_color(crop) if crop is not None else None
        return hex_string(color) if color is not None else ""

    # Lifecycle

    def get_stats(self):
        return self.executor.get_stats()

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    def __enter__(self) -> RecognitionService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
