"""Shared test fixtures for pywia tests."""

import neurokit2 as nk
import numpy as np
import pytest

import pywia
from pywia import ChannelRole, Unit

INTERVAL = 0.01
RHO_C = 1050.0 * 20.0


def triangle(time: np.ndarray, center: float, half_width: float) -> np.ndarray:
    """Unit triangle centered on ``center``."""
    return np.clip(1.0 - np.abs(time - center) / half_width, 0.0, None)


def gaussian(time: np.ndarray, center: float, sigma: float) -> np.ndarray:
    return np.exp(-((time - center) ** 2) / (2 * sigma**2))


def make_beat_data(
    duration: float,
    peak_pressure: float,
    peak_flow: float,
    name: str = "beat",
    interval: float = INTERVAL,
) -> pywia.HemoData:
    """Single beat with triangular pressure (mmHg) and flow (cm/s) pulses.

    Pressure rises from 80 mmHg to ``peak_pressure`` at 0.2 s, flow from
    20 cm/s to ``peak_flow`` at 0.4 s, independent of the beat duration.
    """
    n = int(round(duration / interval)) + 1
    time = np.arange(n) * interval
    data = pywia.HemoData(time, name=name, source=f"{name}.csv")
    data.add_channel(
        "Pressure",
        80.0 + (peak_pressure - 80.0) * triangle(time, 0.2, 0.2),
        ChannelRole.PRESSURE,
        unit=Unit.MMHG,
    )
    data.add_channel(
        "Flow",
        20.0 + (peak_flow - 20.0) * triangle(time, 0.4, 0.3),
        ChannelRole.FLOW,
        unit=Unit.CM_PER_S,
    )
    return data


@pytest.fixture
def three_beats() -> tuple[list[pywia.Beat], list[float], list[float]]:
    """Three beats of 0.80 s, 0.82 s and 0.78 s.

    Returns:
        Tuple of (beats, peak_pressures, peak_flows)
    """
    durations = [0.80, 0.82, 0.78]
    peak_pressures = [120.0, 125.0, 115.0]
    peak_flows = [40.0, 45.0, 35.0]
    beats = [
        pywia.Beat(make_beat_data(d, p, f, name=f"beat {i}"), source="recording")
        for i, (d, p, f) in enumerate(zip(durations, peak_pressures, peak_flows))
    ]
    return beats, peak_pressures, peak_flows


@pytest.fixture
def recording() -> pywia.HemoData:
    """Two-second recording with pressure, flow, ECG and an R-wave marker channel."""
    time = np.arange(201) * INTERVAL
    data = pywia.HemoData(time, name="recording")
    data.add_channel("Pressure", 90 + 20 * np.sin(2 * np.pi * time), ChannelRole.PRESSURE, unit=Unit.MMHG)
    data.add_channel("Flow", 30 + 10 * np.cos(2 * np.pi * time), ChannelRole.FLOW, unit=Unit.CM_PER_S)
    data.add_channel("ECG", np.sin(7 * time), ChannelRole.ECG)
    markers = np.zeros(time.size)
    markers[[10, 110]] = 1.0
    data.add_channel("R", markers, ChannelRole.R_WAVE)
    return data


@pytest.fixture
def reflected_wave_beat() -> tuple[pywia.HemoData, dict[str, float]]:
    """Beat in canonical units built from four well separated waves.

    A forward compression wave at 0.1 s, a backward compression wave at
    0.25 s, a forward decompression wave at 0.4 s and a backward decompression
    wave at 0.6 s, each a Gaussian in the separated pressure derivative.

    Returns:
        Tuple of (data, parameters) where parameters hold ``rho_c``, ``sigma``
        and the amplitude of each wave in Pa/s.
    """
    dt = 0.001
    sigma = 0.02
    time = np.arange(1000) * dt
    params = {"rho_c": RHO_C, "sigma": sigma, "fcw": 1.5e5, "fdw": 8e4, "bcw": 6e4, "bdw": 4e4}
    dp_forward = params["fcw"] * gaussian(time, 0.1, sigma) - params["fdw"] * gaussian(time, 0.4, sigma)
    dp_backward = params["bcw"] * gaussian(time, 0.25, sigma) - params["bdw"] * gaussian(time, 0.6, sigma)
    dp_dt = dp_forward + dp_backward
    du_dt = (dp_forward - dp_backward) / RHO_C
    pressure = 12000.0 + np.concatenate(([0.0], np.cumsum(dp_dt[:-1]) * dt))
    flow = 0.2 + np.concatenate(([0.0], np.cumsum(du_dt[:-1]) * dt))

    data = pywia.HemoData(time, name="reflected")
    data.add_channel("Pressure", pressure, ChannelRole.PRESSURE, unit=Unit.PASCAL)
    data.add_channel("Flow", flow, ChannelRole.FLOW, unit=Unit.M_PER_S)
    return data, params


@pytest.fixture
def ecg_recording() -> tuple[pywia.HemoData, int]:
    """Ten seconds of synthetic ECG at 250 Hz with pressure and flow.

    Returns:
        Tuple of (data, sfreq)
    """
    sfreq = 250
    duration = 10
    ecg = nk.ecg_simulate(
        duration=duration,
        sampling_rate=sfreq,
        noise=0.01,
        heart_rate=70,
        random_state=0,
    )
    time = np.arange(ecg.size) / sfreq
    data = pywia.HemoData(time, name="ecg recording")
    data.add_channel("ECG", ecg, ChannelRole.ECG)
    data.add_channel(
        "Pressure", 90 + 20 * np.sin(2 * np.pi * 70 / 60 * time), ChannelRole.PRESSURE, unit=Unit.MMHG
    )
    data.add_channel(
        "Flow", 30 + 10 * np.cos(2 * np.pi * 70 / 60 * time), ChannelRole.FLOW, unit=Unit.CM_PER_S
    )
    return data, sfreq


@pytest.fixture
def make_beat():
    """Factory for single beats, see :func:`make_beat_data`."""
    return make_beat_data
