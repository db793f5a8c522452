"""Template creation, persistence and the in-memory template bank."""
from __future__ import annotations
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import numpy as np

from .constants import (
    DEFAULT_TEMPLATE_SIZE, DEFAULT_TEMPLATE_THRESHOLD, MIN_TEMPLATE_SIGMA,
    TEMPLATE_VERSION, META_FILENAME, PIXELS_FILENAME,
)
from .entities import Template
from .exceptions import NoVarianceError, CorruptPersistenceError
from ..utils.image_utils import to_grayscale_float

logger = logging.getLogger(__name__)

_PIXEL_DTYPE = np.dtype("<f4")


def create_template(sample: np.ndarray,
                    label: str,
                    target_size: Tuple[int, int] = DEFAULT_TEMPLATE_SIZE,
                    template_id: Optional[str] = None,
                    threshold: float = DEFAULT_TEMPLATE_THRESHOLD,
                    notes: Optional[str] = None) -> Template:
    """Build a zero-mean template from an (already preprocessed) sample image.

    Raises:
        InvalidImageError: sample is empty.
        NoVarianceError: sample has no usable contrast after resampling.
    """
    width, height = target_size
    gray = to_grayscale_float(sample, width, height)
    mean = float(gray.mean())
    zero_mean = (gray - mean).astype(np.float32)
    sigma = float(np.sqrt(np.mean(zero_mean.astype(np.float64) ** 2)))
    if sigma <= MIN_TEMPLATE_SIGMA:
        raise NoVarianceError(f"Template '{label}' has no variation (sigma={sigma:.2e})")

    template = Template(
        id=template_id or str(uuid.uuid4()),
        label=label,
        width=width,
        height=height,
        zero_mean=zero_mean,
        sigma=sigma,
        threshold=float(threshold),
        notes=notes,
    )
    logger.debug("Created template %s for '%s' (sigma=%.6f)", template.id, label, sigma)
    return template


def save_template(template: Template, folder: Union[str, Path]) -> Path:
    """Write ``meta.json`` and ``pixels.bin`` into `folder` (created if needed)."""
    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)

    pixels = np.ascontiguousarray(template.zero_mean, dtype=_PIXEL_DTYPE)
    (folder / PIXELS_FILENAME).write_bytes(pixels.tobytes(order="C"))

    meta = {
        "id": template.id,
        "label": template.label,
        "size": [template.width, template.height],
        "sigma": float(template.sigma),
        "threshold": float(template.threshold),
        "version": template.version or TEMPLATE_VERSION,
        "notes": template.notes,
    }
    with open(folder / META_FILENAME, "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2, sort_keys=True)
    return folder


def load_template(folder: Union[str, Path]) -> Template:
    """Load a template written by :func:`save_template`.

    Raises:
        CorruptPersistenceError: missing files, malformed metadata, or a
            pixel count that disagrees with the stored size.
    """
    folder = Path(folder)
    meta_path = folder / META_FILENAME
    pixels_path = folder / PIXELS_FILENAME
    try:
        with open(meta_path, "r", encoding="utf-8") as f:
            meta = json.load(f)
        raw = pixels_path.read_bytes()
    except (OSError, json.JSONDecodeError) as e:
        raise CorruptPersistenceError(f"Cannot read template at {folder}: {e}") from e

    try:
        width, height = (int(v) for v in meta["size"])
        template_id = str(meta["id"])
        label = str(meta["label"])
        sigma = float(meta["sigma"])
        threshold = float(meta["threshold"])
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptPersistenceError(f"Malformed metadata in {meta_path}: {e}") from e

    if len(raw) % _PIXEL_DTYPE.itemsize:
        raise CorruptPersistenceError(
            f"{pixels_path} has {len(raw)} bytes, not a whole number of float32 values")
    pixels = np.frombuffer(raw, dtype=_PIXEL_DTYPE)
    if pixels.size != width * height:
        raise CorruptPersistenceError(
            f"Bin size mismatch in {folder}: {pixels.size} values for {width}x{height}")

    try:
        return Template(
            id=template_id,
            label=label,
            width=width,
            height=height,
            zero_mean=pixels.astype(np.float32).reshape(height, width),
            sigma=sigma,
            threshold=threshold,
            version=str(meta.get("version") or TEMPLATE_VERSION),
            notes=meta.get("notes"),
        )
    except ValueError as e:
        raise CorruptPersistenceError(f"Invalid template at {folder}: {e}") from e


class TemplateBank:
    """Read-mostly template collection.

    Readers take an immutable tuple snapshot; writers swap in a new tuple
    under the lock.
    """

    def __init__(self, templates: Iterable[Template] = ()):
        self._lock = threading.Lock()
        self._templates: Tuple[Template, ...] = tuple(templates)

    def snapshot(self) -> Tuple[Template, ...]:
        with self._lock:
            return self._templates

    def add(self, template: Template) -> None:
        with self._lock:
            kept = tuple(t for t in self._templates if t.id != template.id)
            self._templates = kept + (template,)

    def remove(self, template_id: str) -> bool:
        with self._lock:
            kept = tuple(t for t in self._templates if t.id != template_id)
            removed = len(kept) != len(self._templates)
            self._templates = kept
        return removed

    def remove_label(self, label: str) -> int:
        with self._lock:
            kept = tuple(t for t in self._templates if t.label != label)
            removed = len(self._templates) - len(kept)
            self._templates = kept
        return removed

    def replace_all(self, templates: Iterable[Template]) -> None:
        new = tuple(templates)
        with self._lock:
            self._templates = new

    def labels(self):
        return sorted({t.label for t in self.snapshot()})

    def get(self, template_id: str) -> Optional[Template]:
        for t in self.snapshot():
            if t.id == template_id:
                return t
        return None

    def __len__(self) -> int:
        return len(self.snapshot())

    def __iter__(self):
        return iter(self.snapshot())
