"""Unit tests for average-colour presence checks."""
import pytest
import numpy as np

from tablereader.core.entities import ColorTargets, Region, Suit
from tablereader.services.color_service import ColorClassifier, within_tolerance


def paint(image, region, rgb255):
    r, g, b = rgb255
    image[region.y:region.y + region.height, region.x:region.x + region.width] = (b, g, r)
    return image


@pytest.fixture
def classifier():
    return ColorClassifier()


@pytest.fixture
def spot():
    return Region("spot", 50, 50, 12, 12)


class TestColorClassifier:
    """Test suite for ColorClassifier."""

    def test_within_tolerance(self):
        assert within_tolerance((0.5, 0.5, 0.5), (0.6, 0.4, 0.5), 0.15)
        assert not within_tolerance((0.5, 0.5, 0.5), (0.7, 0.5, 0.5), 0.15)

    def test_dealer_button(self, classifier, screenshot, spot):
        assert not classifier.check_dealer_button(screenshot, spot)
        paint(screenshot, spot, (233, 242, 237))
        assert classifier.check_dealer_button(screenshot, spot)
        assert not classifier.check_card_back(screenshot, spot)

    def test_card_back(self, classifier, screenshot, spot):
        paint(screenshot, spot, (40, 70, 130))
        assert classifier.check_card_back(screenshot, spot)

    @pytest.mark.parametrize("rgb,suit", [
        ((153, 71, 73), Suit.HEARTS),
        ((72, 118, 155), Suit.DIAMONDS),
        ((79, 151, 86), Suit.CLUBS),
        ((102, 102, 102), Suit.SPADES),
    ])
    def test_detect_suit(self, classifier, screenshot, spot, rgb, suit):
        paint(screenshot, spot, rgb)
        assert classifier.detect_suit(screenshot, spot) is suit

    def test_no_suit(self, classifier, screenshot, spot):
        paint(screenshot, spot, (255, 255, 0))
        assert classifier.detect_suit(screenshot, spot) is None

    def test_region_outside_image(self, classifier, screenshot):
        outside = Region("far", 1000, 1000, 5, 5)
        assert classifier.region_color(screenshot, outside) is None
        assert not classifier.check_dealer_button(screenshot, outside)
        assert classifier.detect_suit(screenshot, outside) is None

    def test_update_target(self, classifier, screenshot, spot):
        paint(screenshot, spot, (255, 255, 0))
        classifier.update_target("hearts", (1.0, 1.0, 0.0))
        assert classifier.detect_suit(screenshot, spot) is Suit.HEARTS
        classifier.update_target("dealer_button", (1.0, 1.0, 0.0))
        assert classifier.check_dealer_button(screenshot, spot)

    def test_update_unknown_target(self, classifier):
        with pytest.raises(ValueError):
            classifier.update_target("chip_stack", (0, 0, 0))

    def test_set_targets_swaps_whole_set(self, classifier):
        targets = ColorTargets(card_back=(0.0, 0.0, 0.0))
        classifier.set_targets(targets)
        assert classifier.targets == targets

    def test_set_targets_detaches_from_caller(self, classifier, screenshot, spot):
        paint(screenshot, spot, (255, 255, 0))
        targets = ColorTargets()
        classifier.set_targets(targets)
        targets.suits[Suit.HEARTS] = (1.0, 1.0, 0.0)
        targets.card_back = (1.0, 1.0, 0.0)
        assert classifier.detect_suit(screenshot, spot) is None
        assert not classifier.check_card_back(screenshot, spot)
