"""Tests for wave speed, wave separation and the analysis session."""

import warnings

import numpy as np
import pandas as pd
import pytest

import pywia
from pywia import ChannelRole, EnsembleType, Unit, WaveClassification
from pywia.waves import WaveCategory


@pytest.fixture
def canonical_beat() -> pywia.HemoData:
    """Beat whose pressure is exactly rho*c times its flow plus an offset."""
    time = np.arange(500) * 0.002
    flow = 0.2 + 0.3 * np.sin(np.pi * time) ** 2
    data = pywia.HemoData(time, name="forward only")
    data.add_channel("Pressure", 10000.0 + 21000.0 * flow, ChannelRole.PRESSURE, unit=Unit.PASCAL)
    data.add_channel("Flow", flow, ChannelRole.FLOW, unit=Unit.M_PER_S)
    return data


@pytest.fixture
def ensembled(three_beats) -> pywia.WIAData:
    """Analysis session on the trimmed ensemble of the three test beats."""
    beats, _, _ = three_beats
    return pywia.WIAData(pywia.ensemble_flow_pressure(beats, EnsembleType.TRIM, "Baseline"))


class TestWaveSpeed:
    """Tests for the single-point wave speed."""

    def test_known_impedance(self, canonical_beat: pywia.HemoData):
        """P = P0 + rho*c*U gives c = rho*c / rho."""
        pressure = canonical_beat.values("Pressure")
        flow = canonical_beat.values("Flow")
        speed, rho_c = pywia.wave_speed(pressure, flow)
        assert rho_c == pytest.approx(21000.0, rel=1e-9)
        assert speed == pytest.approx(20.0, rel=1e-9)

    def test_density(self, canonical_beat: pywia.HemoData):
        pressure = canonical_beat.values("Pressure")
        flow = canonical_beat.values("Flow")
        speed, _ = pywia.wave_speed(pressure, flow, density=1000.0)
        assert speed == pytest.approx(21.0, rel=1e-9)
        with pytest.raises(pywia.InvalidWaveInputError, match="density"):
            pywia.wave_speed(pressure, flow, density=0.0)

    def test_flat_flow(self):
        with pytest.raises(pywia.InvalidWaveInputError, match="does not change"):
            pywia.wave_speed(np.arange(10.0), np.ones(10))


class TestSeparation:
    """Tests for compute_wave_intensity."""

    def test_forward_only(self, canonical_beat: pywia.HemoData):
        """A purely forward beat has no backward intensity."""
        result = pywia.compute_wave_intensity(canonical_beat)
        assert result.wave_speed == pytest.approx(20.0)
        scale = np.max(result.forward)
        assert scale > 0
        np.testing.assert_allclose(result.backward, 0.0, atol=1e-9 * scale)
        np.testing.assert_allclose(result.backward_pressure, 0.0, atol=1e-6)

    def test_signs_and_sum(self, reflected_wave_beat):
        """Forward is never negative, backward never positive, net is their sum."""
        data, _ = reflected_wave_beat
        result = pywia.compute_wave_intensity(data)
        assert np.all(result.forward >= 0)
        assert np.all(result.backward <= 0)
        np.testing.assert_allclose(
            result.net, result.forward + result.backward, rtol=1e-9, atol=1e-9 * np.max(np.abs(result.net))
        )
        assert result.cumulative_net == pytest.approx(
            result.cumulative_forward + result.cumulative_backward, rel=1e-9
        )

    def test_separated_derivatives_add_up(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        result = pywia.compute_wave_intensity(data)
        np.testing.assert_allclose(
            result.forward_pressure + result.backward_pressure, result.pressure_derivative, atol=1e-6
        )
        np.testing.assert_allclose(
            result.forward_flow + result.backward_flow, result.flow_derivative, atol=1e-9
        )

    def test_recovers_components(self, reflected_wave_beat):
        """The separated pressure derivatives match the waves the beat was built from."""
        data, params = reflected_wave_beat
        result = pywia.compute_wave_intensity(data)
        assert result.rho_c == pytest.approx(params["rho_c"], rel=1e-3)
        assert result.wave_speed == pytest.approx(20.0, rel=1e-3)

        peak = int(np.argmax(result.forward_pressure))
        assert result.time[peak] == pytest.approx(0.1, abs=0.002)
        assert result.forward_pressure[peak] == pytest.approx(params["fcw"], rel=1e-2)
        trough = int(np.argmin(result.backward_pressure))
        assert result.time[trough] == pytest.approx(0.6, abs=0.002)

    def test_lengths(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        result = pywia.compute_wave_intensity(data, detect=False)
        assert result.waves == ()
        frame = result.to_frame()
        assert len(frame) == len(data)
        assert {"WI forward", "WI backward", "WI net", "dP+", "dU-"} <= set(frame.columns)


class TestInvalidInput:
    """Inputs the analysis refuses."""

    def test_nan(self, canonical_beat: pywia.HemoData):
        pressure = canonical_beat.values("Pressure").copy()
        pressure[10] = np.nan
        canonical_beat.apply_filter("Pressure", pressure)
        with pytest.raises(pywia.InvalidWaveInputError, match="NaN"):
            pywia.compute_wave_intensity(canonical_beat)

    def test_flat(self, canonical_beat: pywia.HemoData):
        canonical_beat.apply_filter("Flow", np.full(len(canonical_beat), 0.3))
        with pytest.raises(pywia.InvalidWaveInputError, match="flat"):
            pywia.compute_wave_intensity(canonical_beat)

    def test_missing_flow(self, canonical_beat: pywia.HemoData):
        canonical_beat.remove_channel("Flow")
        with pytest.raises(pywia.InvalidWaveInputError, match="flow"):
            pywia.WIAData(canonical_beat)

    def test_wrong_units(self, canonical_beat: pywia.HemoData):
        """compute_wave_intensity needs canonical units; WIAData converts."""
        canonical_beat.convert_units("Pressure", Unit.MMHG)
        with pytest.raises(pywia.InvalidWaveInputError, match="must be in Pa"):
            pywia.compute_wave_intensity(canonical_beat)
        assert pywia.WIAData(canonical_beat).wave_speed == pytest.approx(20.0)

    def test_missing_unit(self, canonical_beat: pywia.HemoData):
        canonical_beat.set_unit("Flow", None)
        with pytest.raises(pywia.InvalidWaveInputError, match="not set"):
            pywia.WIAData(canonical_beat)

    def test_too_short(self):
        data = pywia.HemoData(np.array([0.0, 0.01]))
        data.add_channel("P", [10000.0, 11000.0], ChannelRole.PRESSURE, unit=Unit.PASCAL)
        data.add_channel("U", [0.1, 0.2], ChannelRole.FLOW, unit=Unit.M_PER_S)
        with pytest.raises(pywia.InvalidWaveInputError, match="at least 3"):
            pywia.compute_wave_intensity(data)


class TestWaveDetection:
    """Automatic wave detection on a beat with known waves."""

    def test_named_waves(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        assert [w.name for w in wia.waves] == ["FCW", "BCWearly", "FDW", "BEW"]

        expected_peaks = {"FCW": 0.1, "BCWearly": 0.25, "FDW": 0.4, "BEW": 0.6}
        for name, peak_time in expected_peaks.items():
            assert wia.wave(name).peak_time == pytest.approx(peak_time, abs=0.002)

    def test_categories(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        assert wia.wave("FCW").category == WaveCategory.FORWARD_COMPRESSION
        assert wia.wave("FDW").category == WaveCategory.FORWARD_EXPANSION
        assert wia.wave("BCWearly").classification == WaveClassification.EBCW
        assert wia.wave("BEW").category == WaveCategory.BACKWARD_EXPANSION
        assert wia.wave("FCW").category.is_accelerating
        assert wia.wave("FDW").is_forward

    def test_cumulative_intensity(self, reflected_wave_beat):
        """The integral of (A*g)^2 / rho*c is A^2 * sigma * sqrt(pi) / rho*c."""
        data, params = reflected_wave_beat
        wia = pywia.WIAData(data)
        factor = params["sigma"] * np.sqrt(np.pi) / params["rho_c"]
        assert wia.wave("FCW").cumulative_intensity == pytest.approx(params["fcw"] ** 2 * factor, rel=1e-3)
        assert wia.wave("BCWearly").cumulative_intensity == pytest.approx(
            -params["bcw"] ** 2 * factor, rel=1e-3
        )
        assert wia.wave("FCW").peak == pytest.approx(params["fcw"] ** 2 / params["rho_c"], rel=1e-2)

    def test_detection_can_be_disabled(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        assert pywia.WIAData(data, detect=False).waves == []

    def test_threshold(self, reflected_wave_beat):
        """A high threshold keeps only the dominant wave of each direction."""
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data, threshold=0.5)
        assert [w.name for w in wia.waves] == ["FCW", "BCWearly"]


class TestWaveEditing:
    """Adding and removing waves by hand."""

    def test_add_named(self, reflected_wave_beat):
        data, params = reflected_wave_beat
        wia = pywia.WIAData(data)
        wia.clear_waves()
        wave = wia.add_wave("FCW", WaveClassification.FCW, 30, 170)
        assert wave.category == WaveCategory.FORWARD_COMPRESSION
        assert wave.peak_index == 100
        assert (wave.start_time, wave.end_time) == pytest.approx((0.03, 0.17))
        expected = params["fcw"] ** 2 * params["sigma"] * np.sqrt(np.pi) / params["rho_c"]
        assert wave.cumulative_intensity == pytest.approx(expected, rel=1e-3)

    def test_add_other_needs_direction(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        with pytest.raises(ValueError, match="Direction"):
            wia.add_wave("Mystery", WaveClassification.OTHER, 200, 300)
        wave = wia.add_wave("Mystery", WaveClassification.OTHER, 200, 300, forward=False)
        assert wave.category == WaveCategory.BACKWARD_COMPRESSION
        assert wave.cumulative_intensity < 0

    def test_duplicate_name(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        with pytest.raises(ValueError, match="already exists"):
            wia.add_wave("FCW", WaveClassification.FCW, 30, 170)

    def test_invalid_range(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        with pytest.raises(pywia.IndexOutOfRangeError):
            wia.add_wave("Late", WaveClassification.LFCW, 900, 1000)

    @pytest.mark.parametrize("start, end", [(5000, 6000), (300, 200), (-1, 10)])
    def test_invalid_range_other(self, reflected_wave_beat, start: int, end: int):
        """An unnamed wave's range is checked before its direction is measured."""
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            with pytest.raises(pywia.IndexOutOfRangeError):
                wia.add_wave("Mystery", WaveClassification.OTHER, start, end, forward=True)
        assert "Mystery" not in [wave.name for wave in wia.waves]

    def test_remove(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data)
        removed = wia.remove_wave("FDW")
        assert removed.name == "FDW"
        with pytest.raises(ValueError, match="No wave named"):
            wia.wave("FDW")
        assert len(wia.waves_frame()) == 3


class TestPhases:
    """Systole and diastole markers and the metrics derived from them."""

    def test_unset(self, ensembled: pywia.WIAData):
        with pytest.raises(pywia.PhaseNotSetError):
            ensembled.phase_indices("systole")
        assert "Systole Time" not in ensembled.summary()

    def test_phase_windows(self, ensembled: pywia.WIAData):
        """Diastole wraps around the end of the beat."""
        ensembled.set_systole_by_index(10)
        ensembled.set_diastole_by_index(30)
        systole = ensembled.phase_indices("systole")
        diastole = ensembled.phase_indices("diastole")
        np.testing.assert_array_equal(systole, np.arange(10, 30))
        assert diastole.size == 79 - 20
        assert sorted(np.concatenate((systole, diastole)).tolist()) == list(range(79))
        with pytest.raises(ValueError, match="Phase must be"):
            ensembled.phase_indices("relaxation")

    def test_durations(self, ensembled: pywia.WIAData):
        ensembled.set_systole_by_index(10)
        ensembled.set_diastole_by_index(30)
        assert ensembled.cycle_duration() == pytest.approx(0.78)
        assert ensembled.diastole_duration() == pytest.approx(0.78 - 0.30 + 0.10)
        # Flow peaks at 0.4 s in every beat
        assert ensembled.diastole_to_peak_flow_duration() == pytest.approx(0.10)

    def test_durations_without_wrap(self, ensembled: pywia.WIAData):
        ensembled.set_systole_by_index(60)
        ensembled.set_diastole_by_index(30)
        assert ensembled.diastole_duration() == pytest.approx(0.30)
        assert ensembled.diastole_to_peak_flow_duration() == pytest.approx(0.10)

    def test_short_cycle(self, ensembled: pywia.WIAData):
        ensembled.set_cycle_end_by_index(20)
        assert ensembled.cycle_duration() is None
        ensembled.set_cycle_end_by_index(None)
        assert ensembled.cycle_duration() == pytest.approx(0.78)

    def test_marker_out_of_range(self, ensembled: pywia.WIAData):
        with pytest.raises(pywia.IndexOutOfRangeError):
            ensembled.set_systole_by_index(79)

    def test_resistance(self, ensembled: pywia.WIAData):
        """Resistance is mean pressure in mmHg over mean flow in cm/s."""
        assert ensembled.mean_flow == pytest.approx(np.mean(ensembled.flow))
        assert ensembled.resistance == pytest.approx(ensembled.mean_pressure / (ensembled.mean_flow * 100))

        ensembled.set_systole_by_index(10)
        ensembled.set_diastole_by_index(30)
        pressure, flow = ensembled.phase_means("systole")
        assert ensembled.phase_resistance("systole") == pytest.approx(pressure / (flow * 100))

    def test_zero_flow_resistance(self):
        with pytest.raises(pywia.InvalidWaveInputError, match="zero mean flow"):
            pywia.wia.compute_resistance(90.0, 0.0)


class TestSession:
    """Reports and re-analysis."""

    def test_pressure_reported_in_mmhg(self, ensembled: pywia.WIAData, three_beats):
        beats, peak_pressures, _ = three_beats
        assert ensembled.pressure_mmhg[20] == pytest.approx(np.mean(peak_pressures))
        assert ensembled.flow[40] == pytest.approx(0.40)

    def test_summary(self, ensembled: pywia.WIAData):
        ensembled.set_systole_by_index(10)
        ensembled.set_diastole_by_index(30)
        summary = ensembled.summary()
        assert isinstance(summary, pd.Series)
        assert summary.name == "Baseline"
        assert summary["Selection Name"] == "Baseline"
        assert summary["Max Pressure (mmHg)"] == pytest.approx(120.0)
        assert summary["Min Flow (m/s)"] == pytest.approx(0.20)
        assert summary["Systole Time"] == pytest.approx(0.10)
        assert summary["Diastole Flow (m/s)"] == pytest.approx(ensembled.flow[30])
        assert summary["Cycle duration (s)"] == pytest.approx(0.78)
        assert summary["Cumulative Net"] == pytest.approx(
            summary["Cumulative Forw"] + summary["Cumulative Back"]
        )

    def test_summary_wave_order(self, reflected_wave_beat):
        """Forward waves are reported before backward waves."""
        data, _ = reflected_wave_beat
        summary = pywia.WIAData(data).summary()
        peaks = [key for key in summary.index if key.endswith(" Peak")]
        assert peaks == ["FCW Peak", "FDW Peak", "BCWearly Peak", "BEW Peak"]
        assert summary["FCW Cumulative"] > 0
        assert summary["BEW Cumulative"] < 0

    def test_waves_frame(self, reflected_wave_beat):
        data, _ = reflected_wave_beat
        frame = pywia.WIAData(data).waves_frame()
        assert list(frame["name"]) == ["FCW", "BCWearly", "FDW", "BEW"]
        assert list(frame["classification"]) == ["FCW", "BCWearly", "FDW", "BEW"]
        assert "cumulative_intensity" in frame.columns

    def test_with_data(self, reflected_wave_beat, ensembled: pywia.WIAData):
        """A new session keeps the options and the markers that still fit."""
        data, _ = reflected_wave_beat
        wia = pywia.WIAData(data, threshold=0.5)
        wia.set_systole_by_index(500)
        wia.set_diastole_by_index(50)
        other = wia.with_data(ensembled.data)
        assert other.systole_index is None
        assert other.diastole_index == 50
        assert other.name == "Baseline"
        assert wia.systole_index == 500

    def test_input_untouched(self, three_beats):
        beats, _, _ = three_beats
        beat = pywia.ensemble_flow_pressure(beats, EnsembleType.TRIM, "Baseline")
        pywia.WIAData(beat)
        assert beat.pressure.unit == Unit.MMHG
