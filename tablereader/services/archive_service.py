"""Archival of low-confidence recognitions for later review and retraining."""

import json
import logging
import threading
from typing import Any, Dict, List, Optional
from pathlib import Path
import numpy as np
import cv2
from datetime import datetime

from ..core.entities import FieldType, MatchResult, RecognitionResult, Region

logger = logging.getLogger(__name__)


class BadMatchArchive:
    """Writes one folder per low-confidence event.

    Layout::

        <base_dir>/<YYYY-mm-dd_HHMMSS_ffffff>_score<0.00>/
            processed.png
            original.png      (when the unprocessed crop is available)
            metadata.json
    """

    def __init__(self, base_dir: str = "data/bad_matches"):
        """Initialize the archive.

        Args:
            base_dir: Directory that receives one sub-folder per event
        """
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()

    def _event_dir(self, timestamp: datetime, confidence: float) -> Path:
        name = f"{timestamp.strftime('%Y-%m-%d_%H%M%S_%f')}_score{confidence:.2f}"
        path = self.base_dir / name
        suffix = 1
        while path.exists():
            path = self.base_dir / f"{name}_{suffix}"
            suffix += 1
        path.mkdir(parents=True)
        return path

    def archive(self,
                field_type: FieldType,
                processed: np.ndarray,
                result: RecognitionResult,
                threshold: float,
                region: Optional[Region] = None,
                original: Optional[np.ndarray] = None,
                match: Optional[MatchResult] = None) -> Optional[Path]:
        """Store one event; returns its folder or None when writing failed.

        Archival is a side effect of recognition, so failures are logged
        and never propagated.
        """
        timestamp = datetime.now()
        metadata: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "field_type": field_type.value,
            "raw_text": result.text,
            "confidence": float(result.confidence),
            "threshold": float(threshold),
            "region": region.name if region else None,
            "region_id": region.id if region else None,
            "template_id": match.template_id if match else None,
            "matched_label": match.label if match else None,
            "match_point": list(match.point) if match else None,
        }

        try:
            with self._lock:
                folder = self._event_dir(timestamp, result.confidence)
            if processed is not None and processed.size:
                cv2.imwrite(str(folder / "processed.png"), processed)
            if original is not None and original.size:
                cv2.imwrite(str(folder / "original.png"), original)
            with open(folder / "metadata.json", "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to archive low-confidence {field_type.value} result: {e}")
            return None

        logger.info(
            f"Archived low-confidence {field_type.value} result "
            f"({result.confidence:.2f} < {threshold:.2f}) to {folder}")
        return folder

    def list_events(self) -> List[Path]:
        if not self.base_dir.exists():
            return []
        return sorted(p for p in self.base_dir.iterdir() if (p / "metadata.json").is_file())

    def load_metadata(self, folder: Path) -> Dict[str, Any]:
        with open(Path(folder) / "metadata.json", "r", encoding="utf-8") as f:
            return json.load(f)

    def clear(self) -> int:
        """Delete every archived event; returns how many were removed."""
        removed = 0
        for folder in self.list_events():
            for child in folder.iterdir():
                child.unlink()
            folder.rmdir()
            removed += 1
        if removed:
            logger.info(f"Cleared {removed} archived events")
        return removed
