"""Zero-mean normalized cross-correlation template matching.

The matcher scans every template of a bank over an ROI in two passes: a
coarse pass on a ``scan_stride`` grid, then a step-1 refine pass within
``refine_radius`` of the coarse optimum. Window mean and variance come
from summed-area tables built once per ROI, so only the dot product with
the zero-mean template costs O(n) per position.

Scores use the library's historical normalization
``clamp(dot / (sigma_I * sigma_T) / n, 0, 1)``. Because the template's
sigma is a population standard deviation this is not the textbook ZNCC
value, but stored thresholds (0.70 default, 0.80 bad-match bar) are
calibrated against it.
"""
from __future__ import annotations
import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .constants import (
    DEFAULT_SCAN_STRIDE, DEFAULT_REFINE_RADIUS, MIN_WINDOW_SIGMA, MIN_DENOMINATOR,
)
from .entities import MatchResult, Template
from .integral import IntegralImage
from ..utils.image_utils import ensure_image, to_grayscale_float

logger = logging.getLogger(__name__)


def _score_block(gray: np.ndarray, stats: Tuple[np.ndarray, np.ndarray], template: Template,
                 ys: slice, xs: slice) -> np.ndarray:
    """Scores for the window positions selected by (ys, xs); NaN marks rejected windows."""
    th, tw = template.height, template.width
    n = float(th * tw)
    mean, var = stats
    sigma = np.sqrt(var[ys, xs])

    windows = sliding_window_view(gray, (th, tw))[ys, xs]
    dot = np.einsum("ijkl,kl->ij", windows, template.zero_mean.astype(np.float64))

    denom = sigma * float(template.sigma)
    valid = (sigma >= MIN_WINDOW_SIGMA) & (denom > MIN_DENOMINATOR)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.clip(dot / denom / n, 0.0, 1.0)
    scores[~valid] = np.nan
    return scores


def _first_max(scores: np.ndarray) -> Optional[Tuple[float, int, int]]:
    """(score, row, col) of the first maximum in row-major order, ignoring NaN."""
    if scores.size == 0 or np.all(np.isnan(scores)):
        return None
    idx = int(np.nanargmax(scores))
    row, col = divmod(idx, scores.shape[1])
    return float(scores[row, col]), row, col


def best_match(roi_image: np.ndarray, templates: Sequence[Template],
               scan_stride: int = DEFAULT_SCAN_STRIDE,
               refine_radius: int = DEFAULT_REFINE_RADIUS) -> Optional[MatchResult]:
    """Best-scoring template placement inside an already cropped ROI.

    Args:
        roi_image: ROI image (BGR/gray uint8 or float in [0, 1]).
        templates: Template bank, scanned in order.
        scan_stride: Coarse-pass grid step.
        refine_radius: Half-size of the step-1 refine window.

    Returns:
        The global best match or None when the bank is empty, no template
        fits the ROI, or every candidate window is flat. Thresholding is
        left to the caller.
    """
    if scan_stride < 1:
        raise ValueError(f"scan_stride must be >= 1, got {scan_stride}")
    if refine_radius < 0:
        raise ValueError(f"refine_radius must be >= 0, got {refine_radius}")

    roi_image = ensure_image(roi_image)
    if not templates:
        return None

    roi_h, roi_w = roi_image.shape[:2]
    gray = to_grayscale_float(roi_image, roi_w, roi_h).astype(np.float64)
    integral = IntegralImage.from_array(gray)

    best: Optional[Tuple[float, int, int, Template]] = None
    for template in templates:
        if template.width > roi_w or template.height > roi_h:
            continue
        stats = integral.window_stats(template.width, template.height)
        sh, sw = stats[0].shape

        # Pass 1: coarse grid
        coarse = _score_block(gray, stats, template,
                              slice(0, sh, scan_stride), slice(0, sw, scan_stride))
        found = _first_max(coarse)
        if found is None:
            continue
        _, row, col = found
        cx, cy = col * scan_stride, row * scan_stride

        # Pass 2: refine at step 1 around the coarse optimum
        x0, x1 = max(0, cx - refine_radius), min(sw - 1, cx + refine_radius)
        y0, y1 = max(0, cy - refine_radius), min(sh - 1, cy + refine_radius)
        fine = _score_block(gray, stats, template, slice(y0, y1 + 1), slice(x0, x1 + 1))
        refined = _first_max(fine)
        if refined is None:
            continue
        score, row, col = refined
        if best is None or score > best[0]:
            best = (score, x0 + col, y0 + row, template)

    if best is None:
        logger.debug("No match for %dx%d ROI against %d templates", roi_w, roi_h, len(templates))
        return None

    score, x, y, template = best
    return MatchResult(label=template.label, template_id=template.id, point=(x, y), score=score)
