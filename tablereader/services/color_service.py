"""Average-colour presence checks: dealer button, card back and suit."""
import logging
import threading
from dataclasses import replace
from typing import Optional, Sequence

import numpy as np

from ..core.constants import DEFAULT_COLOR_TOLERANCE
from ..core.entities import ColorTargets, Region, RGB, Suit
from ..utils.image_utils import average_color, crop_region

logger = logging.getLogger(__name__)

SUIT_ORDER = (Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES)


def within_tolerance(color: Sequence[float], target: Sequence[float], tolerance: float) -> bool:
    """True when every channel differs by at most `tolerance`."""
    return all(abs(c - t) <= tolerance for c, t in zip(color, target))


def _copy_targets(targets: ColorTargets) -> ColorTargets:
    # Detach from the caller's suits dict so later edits cannot bypass the lock
    return replace(targets, suits=dict(targets.suits))


class ColorClassifier:
    """Classifies a region by comparing its mean colour against configured targets.

    Targets are swapped as a whole under a lock, so a check always sees
    one consistent set.
    """

    def __init__(self, targets: Optional[ColorTargets] = None,
                 tolerance: float = DEFAULT_COLOR_TOLERANCE):
        self._lock = threading.Lock()
        self._targets = _copy_targets(targets or ColorTargets())
        self.tolerance = tolerance

    @property
    def targets(self) -> ColorTargets:
        with self._lock:
            return self._targets

    def set_targets(self, targets: ColorTargets) -> None:
        with self._lock:
            self._targets = _copy_targets(targets)

    def update_target(self, name: str, rgb: RGB) -> None:
        """Replace one target: ``dealer_button``, ``card_back`` or a suit name/letter."""
        with self._lock:
            current = self._targets
            if name == "dealer_button":
                self._targets = replace(current, dealer_button=tuple(rgb))
            elif name == "card_back":
                self._targets = replace(current, card_back=tuple(rgb))
            else:
                suit = next((s for s in Suit if name in (s.value, s.name.lower())), None)
                if suit is None:
                    raise ValueError(f"Unknown colour target '{name}'")
                suits = dict(current.suits)
                suits[suit] = tuple(rgb)
                self._targets = replace(current, suits=suits)

    def region_color(self, image: np.ndarray, region: Region) -> Optional[RGB]:
        crop = crop_region(image, region)
        return average_color(crop) if crop is not None else None

    def check_dealer_button(self, image: np.ndarray, region: Region) -> bool:
        color = self.region_color(image, region)
        return color is not None and within_tolerance(color, self.targets.dealer_button, self.tolerance)

    def check_card_back(self, image: np.ndarray, region: Region) -> bool:
        color = self.region_color(image, region)
        return color is not None and within_tolerance(color, self.targets.card_back, self.tolerance)

    def detect_suit(self, image: np.ndarray, region: Region) -> Optional[Suit]:
        """First suit (hearts, diamonds, clubs, spades) whose target matches."""
        color = self.region_color(image, region)
        if color is None:
            return None
        suits = self.targets.suits
        for suit in SUIT_ORDER:
            target = suits.get(suit)
            if target is not None and within_tolerance(color, target, self.tolerance):
                return suit
        logger.debug("No suit within %.2f of %s", self.tolerance, color)
        return None
