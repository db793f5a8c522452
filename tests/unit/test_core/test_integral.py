"""Unit tests for summed-area tables."""
import pytest
import numpy as np

from tablereader.core.integral import IntegralImage, rect_sum, window_sums


@pytest.fixture
def buffer():
    rng = np.random.default_rng(3)
    return rng.random((7, 9))


class TestIntegralImage:
    """Test suite for IntegralImage."""

    def test_table_shape_has_zero_border(self, buffer):
        integral = IntegralImage.from_array(buffer)
        assert integral.sum_table.shape == (8, 10)
        assert integral.shape == (7, 9)
        assert np.all(integral.sum_table[0] == 0)
        assert np.all(integral.sum_table[:, 0] == 0)

    def test_rect_sum_matches_direct_sum(self, buffer):
        integral = IntegralImage.from_array(buffer)
        for x, y, w, h in [(0, 0, 9, 7), (2, 3, 4, 2), (8, 6, 1, 1)]:
            expected = buffer[y:y + h, x:x + w].sum()
            assert integral.rect_sum(x, y, w, h) == pytest.approx(expected)
            expected_sq = (buffer[y:y + h, x:x + w] ** 2).sum()
            assert integral.rect_sq_sum(x, y, w, h) == pytest.approx(expected_sq)

    def test_local_stats(self, buffer):
        integral = IntegralImage.from_array(buffer)
        window = buffer[1:5, 2:8]
        mean, var = integral.local_stats(2, 1, 6, 4)
        assert mean == pytest.approx(window.mean())
        assert var == pytest.approx(window.var())

    def test_variance_is_floored(self):
        integral = IntegralImage.from_array(np.full((4, 4), 0.5))
        _, var = integral.local_stats(0, 0, 4, 4)
        assert var == pytest.approx(1e-12)

    def test_window_stats_cover_every_position(self, buffer):
        integral = IntegralImage.from_array(buffer)
        mean, var = integral.window_stats(3, 2)
        assert mean.shape == (6, 7)
        assert mean[4, 5] == pytest.approx(buffer[4:6, 5:8].mean())
        assert var[4, 5] == pytest.approx(buffer[4:6, 5:8].var())

    def test_rejects_non_2d_input(self):
        with pytest.raises(ValueError):
            IntegralImage.from_array(np.zeros((2, 2, 3)))


def test_window_sums_agrees_with_rect_sum(buffer):
    integral = IntegralImage.from_array(buffer)
    sums = window_sums(integral.sum_table, 4, 3)
    assert sums[2, 1] == pytest.approx(rect_sum(integral.sum_table, 1, 2, 4, 3))
