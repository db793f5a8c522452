"""Unit tests for the preprocessing pipeline and its steps."""
import pytest
import numpy as np

from tablereader.core.entities import ColorFilterMode, MorphologyMode, PreprocessParameters
from tablereader.core.exceptions import InvalidImageError
from tablereader.core.preprocessing import (
    PreprocessPipeline, apply_color_filter, closing, color_controls, kernel_radius,
    multi_channel_filter, opening, preprocess, threshold_image, thicken,
)


def solid(value, width=10, height=6):
    return np.full((height, width, 3), value, dtype=np.uint8)


def rgb_pixels(*colors):
    return np.array([colors], dtype=np.float32)


class TestPreprocess:
    """Test suite for the full pipeline."""

    def test_output_is_binary_uint8_bgr_at_scaled_size(self, card_image):
        out = preprocess(card_image)
        assert out.dtype == np.uint8
        assert out.shape == (200, 140, 3)
        assert set(np.unique(out)) <= {0, 255}

    def test_input_is_not_modified(self, card_image):
        before = card_image.copy()
        preprocess(card_image, PreprocessParameters(use_bilateral_filter=True,
                                                    use_background_subtraction=True))
        np.testing.assert_array_equal(card_image, before)

    def test_deterministic(self, card_image):
        params = PreprocessParameters(morphology_mode=MorphologyMode.CLOSING, morph_radius=1.0)
        np.testing.assert_array_equal(preprocess(card_image, params),
                                      preprocess(card_image, params))

    def test_white_stays_white_and_black_stays_black(self):
        assert np.all(preprocess(solid(255)) == 255)
        assert np.all(preprocess(solid(0)) == 0)

    def test_scale_one_keeps_size(self):
        out = preprocess(solid(255), PreprocessParameters(scale=1.0))
        assert out.shape == (6, 10, 3)

    def test_grayscale_input(self):
        gray = np.full((6, 10), 255, dtype=np.uint8)
        out = preprocess(gray, PreprocessParameters(scale=1.0))
        assert out.shape == (6, 10, 3)

    def test_adaptive_threshold_runs(self, card_image):
        out = preprocess(card_image, PreprocessParameters(use_adaptive_threshold=True))
        assert set(np.unique(out)) <= {0, 255}

    @pytest.mark.parametrize("mode", list(ColorFilterMode))
    def test_every_color_filter_mode(self, card_image, mode):
        out = preprocess(card_image, PreprocessParameters(color_filter_mode=mode, scale=1.0))
        assert out.shape == (50, 35, 3)

    @pytest.mark.parametrize("mode", list(MorphologyMode))
    def test_every_morphology_mode(self, card_image, mode):
        out = preprocess(card_image, PreprocessParameters(morphology_mode=mode, scale=1.0))
        assert out.shape == (50, 35, 3)

    def test_empty_image(self):
        with pytest.raises(InvalidImageError):
            preprocess(np.zeros((0, 0, 3), dtype=np.uint8))


class TestPipeline:
    def test_callable_uses_bound_parameters(self, card_image):
        pipeline = PreprocessPipeline(PreprocessParameters(scale=1.0))
        assert pipeline(card_image).shape == (50, 35, 3)

    def test_with_parameters_leaves_original_untouched(self):
        pipeline = PreprocessPipeline()
        derived = pipeline.with_parameters(scale=2.0)
        assert derived.params.scale == 2.0
        assert pipeline.params.scale == 4.0


class TestColorFilters:
    """Test suite for the colour filter step."""

    def test_hsv_filter_blanks_pixels_in_range(self):
        rgb = rgb_pixels((0.0, 1.0, 0.0), (1.0, 0.0, 0.0))
        out = apply_color_filter(rgb, PreprocessParameters(color_filter_mode=ColorFilterMode.HSV_FILTER))
        np.testing.assert_allclose(out[0, 0], (0, 0, 0))
        np.testing.assert_allclose(out[0, 1], (1, 0, 0))

    def test_color_distance_removes_table_colours(self):
        rgb = rgb_pixels((0.0, 0.5, 0.0), (1.0, 1.0, 0.0), (0.0, 0.0, 0.05), (1.0, 1.0, 1.0))
        out = apply_color_filter(
            rgb, PreprocessParameters(color_filter_mode=ColorFilterMode.COLOR_DISTANCE))
        np.testing.assert_allclose(out[0, :3], 0.0)
        np.testing.assert_allclose(out[0, 3], (1, 1, 1))

    def test_white_isolation_keeps_only_bright_unsaturated(self):
        rgb = rgb_pixels((0.95, 0.95, 0.95), (1.0, 0.2, 0.2), (0.3, 0.3, 0.3))
        out = apply_color_filter(
            rgb, PreprocessParameters(color_filter_mode=ColorFilterMode.WHITE_ISOLATION))
        np.testing.assert_allclose(out[0, 0], (0.95, 0.95, 0.95), atol=1e-6)
        np.testing.assert_allclose(out[0, 1:], 0.0)

    def test_multi_channel_takes_channel_maximum(self):
        out = multi_channel_filter(rgb_pixels((0.2, 0.7, 0.1)))
        np.testing.assert_allclose(out[0, 0], (0.7, 0.7, 0.7))

    def test_none_is_identity(self):
        rgb = rgb_pixels((0.1, 0.2, 0.3))
        assert apply_color_filter(rgb, PreprocessParameters()) is rgb


class TestTonalSteps:
    def test_color_controls_order(self):
        # saturation 0 -> luma, then brightness, then contrast around 0.5
        out = color_controls(rgb_pixels((0.5, 0.5, 0.5)), contrast=2.0, brightness=0.1,
                             saturation=0.0)
        np.testing.assert_allclose(out[0, 0], (0.7, 0.7, 0.7), atol=1e-6)

    def test_color_controls_clamps(self):
        out = color_controls(rgb_pixels((1.0, 1.0, 1.0)), contrast=3.0, brightness=0.5,
                             saturation=1.0)
        np.testing.assert_allclose(out[0, 0], (1, 1, 1))

    def test_simple_threshold(self):
        out = threshold_image(rgb_pixels((0.3, 0.3, 0.3), (0.2, 0.2, 0.2)),
                              PreprocessParameters(threshold=0.25))
        np.testing.assert_allclose(out[0, 0], (1, 1, 1))
        np.testing.assert_allclose(out[0, 1], (0, 0, 0))


class TestMorphology:
    """Test suite for the morphology helpers."""

    @staticmethod
    def dot_image():
        img = np.zeros((9, 9, 3), dtype=np.float32)
        img[4, 4] = 1.0
        return img

    @pytest.mark.parametrize("size,expected", [(0.1, 0), (0.5, 1), (1.49, 1), (2.5, 3)])
    def test_kernel_radius(self, size, expected):
        assert kernel_radius(size) == expected

    def test_opening_removes_isolated_pixel(self):
        assert opening(self.dot_image(), 1).max() == 0.0

    def test_closing_fills_hole(self):
        img = np.ones((9, 9, 3), dtype=np.float32)
        img[4, 4] = 0.0
        assert closing(img, 1).min() == 1.0

    def test_thicken_grows_strokes(self):
        grown = thicken(self.dot_image(), 1)
        assert grown[3, 4, 0] == 1.0
        assert grown[4, 5, 0] == 1.0
        assert grown[0, 0, 0] == 0.0

    def test_zero_radius_is_identity(self):
        img = self.dot_image()
        assert thicken(img, 0) is img
        assert opening(img, 0) is img
