"""Tests for resampling."""

import numpy as np
import pytest

import pywia
from pywia import ChannelRole


@pytest.fixture
def ramp() -> pywia.HemoData:
    """One second of a linear ramp starting at t = 0.5 s."""
    time = 0.5 + np.arange(101) * 0.01
    data = pywia.HemoData(time, name="ramp")
    data.add_channel("P", 4.0 * time - 1.0, ChannelRole.PRESSURE)
    return data


class TestResampleAt:
    """Tests for HemoData.resample_at."""

    def test_same_interval_is_identity(self, recording: pywia.HemoData):
        """Resampling at the existing interval reproduces the data."""
        resampled = recording.resample_at(recording.average_interval)
        assert len(resampled) == len(recording)
        np.testing.assert_allclose(resampled.time, recording.time, atol=1e-12)
        for name in ("Pressure", "Flow", "ECG", "R"):
            np.testing.assert_allclose(resampled.values(name), recording.values(name), atol=1e-9)

    def test_linear_interpolation_exact(self, ramp: pywia.HemoData):
        """A line is reproduced exactly on a finer grid."""
        resampled = ramp.resample_at(0.003)
        np.testing.assert_allclose(resampled.values("P"), 4.0 * resampled.time - 1.0, atol=1e-12)

    def test_grid_starts_at_first_sample(self, ramp: pywia.HemoData):
        resampled = ramp.resample_at(0.025)
        assert resampled.time[0] == pytest.approx(0.5)
        assert resampled.average_interval == pytest.approx(0.025)
        assert len(resampled) == 41
        assert resampled.time[-1] <= ramp.time[-1] + 1e-12

    def test_original_untouched(self, ramp: pywia.HemoData):
        ramp.resample_at(0.02)
        assert len(ramp) == 101

    def test_roles_and_units_kept(self, recording: pywia.HemoData):
        resampled = recording.resample_at(0.005)
        assert resampled.channel("Pressure").unit == pywia.Unit.MMHG
        assert resampled.has_role("R", ChannelRole.R_WAVE)

    def test_markers_stay_sharp(self, recording: pywia.HemoData):
        """Marker channels are moved to the nearest sample, not interpolated."""
        resampled = recording.resample_at(0.004)
        markers = resampled.values("R")
        assert set(np.unique(markers)) == {0.0, 1.0}
        np.testing.assert_allclose(resampled.time[np.flatnonzero(markers)], [0.1, 1.1], atol=0.002)

    def test_progress(self, recording: pywia.HemoData):
        updates = []

        class Recorder:
            def set_enabled(self, current, maximum):
                updates.append((current, maximum))

            def set_progress(self, current):
                updates.append(current)

        recording.resample_at(0.02, progress=Recorder())
        assert updates == [(0, 4), 1, 2, 3, 4]

    def test_tqdm_progress(self, recording: pywia.HemoData):
        """The tqdm recorder can drive a resample."""
        recorder = pywia.TqdmProgressRecorder("Resampling", disable=True)
        recording.resample_at(0.02, progress=recorder)
        assert recorder.current is None


class TestResampleErrors:
    """Each failure has its own error type."""

    def test_non_positive(self, ramp: pywia.HemoData):
        with pytest.raises(pywia.NonPositiveIntervalError):
            ramp.resample_at(0.0)
        with pytest.raises(pywia.NonPositiveIntervalError):
            ramp.resample_at(-0.01)

    def test_too_large(self, ramp: pywia.HemoData):
        with pytest.raises(pywia.IntervalTooLargeError, match="exceeds the duration"):
            ramp.resample_at(1.5)

    def test_too_short(self):
        data = pywia.HemoData(np.array([0.0]))
        with pytest.raises(pywia.SeriesTooShortError):
            data.resample_at(0.01)

    def test_errors_share_base(self, ramp: pywia.HemoData):
        with pytest.raises(pywia.ResampleError):
            ramp.resample_at(5.0)


class TestResampleInterval:
    """Tests for calculate_resample_interval."""

    def test_numeric_string(self):
        time = np.arange(100) * 0.004
        assert pywia.calculate_resample_interval("0.005", time) == pytest.approx(0.005)

    def test_oversampling(self):
        """Oversampling caps the interval at the finest input divided by the level."""
        first = np.arange(100) * 0.004
        second = np.arange(50) * 0.008
        interval = pywia.calculate_resample_interval(0.01, first, second, oversample_level=2)
        assert interval == pytest.approx(0.002)

    def test_validates_every_series(self):
        long = np.arange(1000) * 0.001
        short = np.arange(10) * 0.001
        with pytest.raises(pywia.IntervalTooLargeError):
            pywia.calculate_resample_interval(0.05, long, short)

    def test_not_numeric(self):
        with pytest.raises(ValueError, match="numeric"):
            pywia.calculate_resample_interval("fast", np.arange(10) * 0.01)


class TestResampleToLength:
    def test_end_points_kept(self):
        values = np.array([0.0, 1.0, 4.0, 9.0])
        stretched = pywia.resample_to_length(values, 7)
        assert stretched.size == 7
        assert stretched[0] == 0.0
        assert stretched[-1] == 9.0
        assert stretched[2] == pytest.approx(1.0)
