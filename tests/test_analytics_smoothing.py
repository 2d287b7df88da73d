"""Tests for tremorsense.analytics.smoothing -- moving average and anomalies."""

import pytest

from tremorsense.analytics.smoothing import smooth, detect_anomalies


class TestSmooth:
    def test_empty(self):
        assert smooth([]) == []

    def test_identity_when_window_covers_series(self):
        data = [1.0, 5.0, 2.0]
        assert smooth(data, 3) == data
        assert smooth(data, 10) == data

    def test_identity_returns_copy(self):
        data = [1.0, 2.0]
        out = smooth(data, 5)
        out.append(3.0)
        assert data == [1.0, 2.0]

    @pytest.mark.parametrize("window", [1, 2, 3, 4, 5, 8])
    def test_preserves_length(self, window):
        data = [float(i % 4) for i in range(12)]
        assert len(smooth(data, window)) == len(data)

    def test_window_one_is_identity(self):
        data = [3.0, 1.0, 4.0, 1.0, 5.0]
        assert smooth(data, 1) == pytest.approx(data)

    def test_centered_average(self):
        data = [0.0, 0.0, 3.0, 0.0, 0.0, 0.0]
        result = smooth(data, 3)
        # interior: mean of 3 neighbours
        assert result[1] == pytest.approx(1.0)
        assert result[2] == pytest.approx(1.0)
        assert result[3] == pytest.approx(1.0)
        assert result[4] == pytest.approx(0.0)

    def test_boundaries_use_clipped_window(self):
        data = [6.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        result = smooth(data, 5)
        # i=0 window [0, 2] -> 3 values
        assert result[0] == pytest.approx(2.0)
        # i=1 window [0, 3] -> 4 values
        assert result[1] == pytest.approx(1.5)
        # i=5 window [3, 5] -> 3 values
        assert result[5] == pytest.approx(0.0)

    def test_even_window_uses_half_floor(self):
        data = [0.0, 4.0, 0.0, 0.0, 0.0]
        # window 4 -> half 2 -> i=2 spans [0, 4]
        result = smooth(data, 4)
        assert result[2] == pytest.approx(0.8)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            smooth([1.0, 2.0], 0)


class TestDetectAnomalies:
    def test_empty(self):
        assert detect_anomalies([]) == []

    def test_constant_series_has_no_anomalies(self):
        assert detect_anomalies([1.0] * 20) == []

    def test_single_value(self):
        assert detect_anomalies([5.0]) == []

    def test_spike_detected(self):
        data = [1.0] * 19 + [10.0]
        assert detect_anomalies(data) == [19]

    def test_threshold(self):
        data = [0.0] * 8 + [1.0, -1.0]
        # std = sqrt(0.2) ~ 0.447; |1| / 0.447 ~ 2.24
        assert detect_anomalies(data, threshold=2.0) == [8, 9]
        assert detect_anomalies(data, threshold=2.5) == []

    def test_indices_ascending(self):
        data = [50.0] + [1.0] * 30 + [50.0]
        result = detect_anomalies(data)
        assert result == sorted(result)
        assert result == [0, 31]

    def test_no_anomalies_in_uniform_noise(self):
        data = [1.0, 1.1, 0.9, 1.05, 0.95] * 4
        assert detect_anomalies(data) == []
