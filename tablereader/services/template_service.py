"""On-disk template library for card matching."""

import logging
import shutil
import uuid
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

from ..config.defaults import default_parameters
from ..core.constants import (
    DEFAULT_TEMPLATE_SIZE, DEFAULT_TEMPLATE_THRESHOLD, META_FILENAME, PROCESSED_FILENAME,
)
from ..core.entities import FieldType, MatchResult, PreprocessParameters, Template
from ..core.exceptions import CorruptPersistenceError
from ..core.matching import best_match
from ..core.preprocessing import preprocess
from ..core.templates import TemplateBank, create_template, load_template, save_template
from ..utils.image_utils import resize_to_cover

logger = logging.getLogger(__name__)


class TemplateFolder(Enum):
    BOARD = "board"
    PLAYER = "player"


class TemplateLibrary:
    """Templates stored as ``<base_dir>/<folder>/<label>/<template id>/``.

    Each template directory holds ``meta.json``, ``pixels.bin`` and a
    ``processed.png`` preview. Loading never fails as a whole: corrupt
    templates are logged, listed in :attr:`load_errors` and skipped.
    """

    def __init__(self,
                 base_dir: Union[str, Path] = "data/templates",
                 folder: TemplateFolder = TemplateFolder.BOARD,
                 template_size: Tuple[int, int] = DEFAULT_TEMPLATE_SIZE,
                 threshold: float = DEFAULT_TEMPLATE_THRESHOLD,
                 params: Optional[PreprocessParameters] = None):
        self.base_dir = Path(base_dir)
        self.folder = folder
        self.template_size = tuple(template_size)
        self.threshold = threshold
        self.params = params or default_parameters(FieldType.CARD_TEMPLATE)
        self.bank = TemplateBank()
        self.load_errors: List[Tuple[Path, str]] = []

    @property
    def directory(self) -> Path:
        return self.base_dir / self.folder.value

    def select_folder(self, folder: TemplateFolder) -> int:
        """Switch to another folder and reload; returns the template count."""
        self.folder = folder
        return self.load()

    def _template_dirs(self):
        if not self.directory.is_dir():
            return
        for label_dir in sorted(p for p in self.directory.iterdir() if p.is_dir()):
            for template_dir in sorted(p for p in label_dir.iterdir() if p.is_dir()):
                yield template_dir

    def load(self) -> int:
        """Load every template of the current folder into the bank."""
        templates: List[Template] = []
        errors: List[Tuple[Path, str]] = []
        for template_dir in self._template_dirs():
            try:
                templates.append(load_template(template_dir))
            except CorruptPersistenceError as e:
                logger.error(f"Skipping corrupt template at {template_dir}: {e}")
                errors.append((template_dir, str(e)))
        self.bank.replace_all(templates)
        self.load_errors = errors
        logger.info(f"Loaded {len(templates)} templates from {self.directory}"
                    + (f" ({len(errors)} skipped)" if errors else ""))
        return len(templates)

    def prepare(self, image: np.ndarray) -> np.ndarray:
        """Resize to the template size and binarize with the template parameters."""
        width, height = self.template_size
        return preprocess(resize_to_cover(image, width, height), self.params)

    def add_template(self, sample: np.ndarray, label: str,
                     notes: Optional[str] = None) -> Template:
        """Create a template from a raw card crop, persist it and add it to the bank.

        Raises:
            InvalidImageError: empty sample.
            NoVarianceError: sample is blank after preprocessing.
        """
        processed = self.prepare(sample)
        template = create_template(
            processed,
            label=label,
            target_size=self.template_size,
            template_id=uuid.uuid4().hex[:8],
            threshold=self.threshold,
            notes=notes,
        )
        folder = save_template(template, self.directory / label / template.id)
        cv2.imwrite(str(folder / PROCESSED_FILENAME), processed)
        self.bank.add(template)
        logger.info(f"Template saved: {label} ({template.id}) to {self.folder.value}")
        return template

    def _find_dir(self, template_id: str) -> Optional[Path]:
        for template_dir in self._template_dirs():
            if template_dir.name == template_id and (template_dir / META_FILENAME).exists():
                return template_dir
        return None

    def delete_template(self, template_id: str) -> bool:
        template_dir = self._find_dir(template_id)
        if template_dir is not None:
            shutil.rmtree(template_dir)
            label_dir = template_dir.parent
            if not any(label_dir.iterdir()):
                label_dir.rmdir()
        removed = self.bank.remove(template_id)
        if template_dir is None and not removed:
            logger.warning(f"Template {template_id} not found")
            return False
        logger.info(f"Deleted template {template_id}")
        return True

    def delete_label(self, label: str) -> int:
        """Delete every template of `label`; returns how many were removed from the bank."""
        label_dir = self.directory / label
        if label_dir.is_dir():
            shutil.rmtree(label_dir)
        removed = self.bank.remove_label(label)
        logger.info(f"Deleted {removed} templates for '{label}'")
        return removed

    def clear(self) -> int:
        """Delete all templates of the current folder."""
        count = len(self.bank)
        if self.directory.is_dir():
            shutil.rmtree(self.directory)
        self.bank.replace_all(())
        logger.info(f"Cleared {count} templates from {self.folder.value}")
        return count

    def labels(self) -> List[str]:
        return self.bank.labels()

    def count(self, label: Optional[str] = None) -> int:
        if label is None:
            return len(self.bank)
        return sum(1 for t in self.bank.snapshot() if t.label == label)

    def templates_by_label(self) -> Dict[str, List[Template]]:
        grouped: Dict[str, List[Template]] = {}
        for t in self.bank.snapshot():
            grouped.setdefault(t.label, []).append(t)
        return grouped

    def match(self, roi_image: np.ndarray, scan_stride: int = 1,
              refine_radius: int = 2) -> Tuple[Optional[MatchResult], np.ndarray]:
        """Prepare a raw card crop and match it against the bank.

        Returns the best match (or None) together with the processed image.
        """
        processed = self.prepare(roi_image)
        return best_match(processed, self.bank.snapshot(), scan_stride, refine_radius), processed
