"""Summed-area tables for O(1) window statistics."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .constants import VARIANCE_FLOOR


def rect_sum(table: np.ndarray, x: int, y: int, w: int, h: int) -> float:
    """Sum of the w x h rectangle at (x, y) via four-corner inclusion-exclusion."""
    return float(table[y + h, x + w] - table[y, x + w] - table[y + h, x] + table[y, x])


def window_sums(table: np.ndarray, w: int, h: int) -> np.ndarray:
    """Rectangle sums for every valid top-left position.

    Returns an array of shape (H - h + 1, W - w + 1) where H, W are the
    dimensions of the source buffer.
    """
    return table[h:, w:] - table[:-h, w:] - table[h:, :-w] + table[:-h, :-w]


@dataclass(slots=True)
class IntegralImage:
    """Sum and sum-of-squares tables of a 2D float buffer.

    Both tables have shape (H + 1, W + 1) with a zero first row and column.
    """
    sum_table: np.ndarray
    sq_table: np.ndarray

    @classmethod
    def from_array(cls, buffer: np.ndarray) -> IntegralImage:
        data = np.asarray(buffer, dtype=np.float64)
        if data.ndim != 2:
            raise ValueError(f"Expected a 2D buffer, got shape {data.shape}")
        h, w = data.shape
        sum_table = np.zeros((h + 1, w + 1), dtype=np.float64)
        sq_table = np.zeros((h + 1, w + 1), dtype=np.float64)
        sum_table[1:, 1:] = data.cumsum(axis=0).cumsum(axis=1)
        sq_table[1:, 1:] = (data * data).cumsum(axis=0).cumsum(axis=1)
        return cls(sum_table, sq_table)

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width) of the source buffer."""
        h, w = self.sum_table.shape
        return (h - 1, w - 1)

    def rect_sum(self, x: int, y: int, w: int, h: int) -> float:
        return rect_sum(self.sum_table, x, y, w, h)

    def rect_sq_sum(self, x: int, y: int, w: int, h: int) -> float:
        return rect_sum(self.sq_table, x, y, w, h)

    def local_stats(self, x: int, y: int, w: int, h: int) -> Tuple[float, float]:
        """(mean, variance) of a window, variance floored at 1e-12."""
        n = float(w * h)
        mean = self.rect_sum(x, y, w, h) / n
        var = max(self.rect_sq_sum(x, y, w, h) / n - mean * mean, VARIANCE_FLOOR)
        return mean, var

    def window_stats(self, w: int, h: int) -> Tuple[np.ndarray, np.ndarray]:
        """Mean and floored variance for every w x h window position."""
        n = float(w * h)
        mean = window_sums(self.sum_table, w, h) / n
        var = np.maximum(window_sums(self.sq_table, w, h) / n - mean * mean, VARIANCE_FLOOR)
        return mean, var
