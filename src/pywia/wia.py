"""Wave intensity analysis of one ensembled beat.

The wave speed is estimated with the single-point (sum-of-squares) method::

    rho * c = sqrt(sum(dP^2) / sum(dU^2))

and the pressure and flow velocity derivatives are separated into forward
and backward travelling components::

    dI+ =  (dP/dt + rho*c * dU/dt)^2 / (4 * rho*c)
    dI- = -(dP/dt - rho*c * dU/dt)^2 / (4 * rho*c)

Forward intensity is never negative, backward intensity never positive, and
the net intensity ``dP/dt * dU/dt`` equals ``dI+ + dI-``.

All calculations expect time in seconds, pressure in pascals and flow
velocity in m/s. :meth:`HemoData.to_canonical_units` converts a beat.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from ._logging import logger
from .beats import Beat
from .constants import BLOOD_DENSITY, CM_PER_M, MIN_CYCLE_DURATION
from .data import HemoData
from .exceptions import (
    IndexOutOfRangeError,
    InvalidWaveInputError,
    MissingChannelError,
    PhaseNotSetError,
    UnitConversionError,
)
from .types import ChannelRole, Signal, Unit
from .units import pascal_to_mmhg
from .utils import area_under_curve, differences
from .waves import Wave, WaveCategory, WaveClassification, check_wave_range, detect_waves, make_wave


def validate_wave_input(data: HemoData) -> tuple[Signal, Signal, Signal]:
    """Extract time, pressure and flow, rejecting anything unfit for analysis.

    Args:
        data: Beat in canonical units.

    Returns:
        Tuple of (time, pressure, flow) arrays.

    Raises:
        InvalidWaveInputError: If pressure or flow is missing, in the wrong
            unit, contains NaN or infinite values, is flat, or the beat has
            fewer than 3 samples.
    """
    try:
        pressure = data.channel_by_role(ChannelRole.PRESSURE)
        flow = data.channel_by_role(ChannelRole.FLOW)
    except MissingChannelError as e:
        raise InvalidWaveInputError(str(e)) from e

    if len(data) < 3:
        raise InvalidWaveInputError(f"'{data.name}' has {len(data)} samples, need at least 3")
    expected = (
        (data.time_channel, Unit.SECONDS),
        (pressure, Unit.PASCAL),
        (flow, Unit.M_PER_S),
    )
    for channel, unit in expected:
        if channel.unit != unit:
            found = channel.unit.value if channel.unit is not None else "no unit"
            raise InvalidWaveInputError(
                f"Channel '{channel.name}' must be in {unit.value}, found {found}; "
                "convert the beat to canonical units first"
            )
    for channel in (pressure, flow):
        if len(channel) != len(data):
            raise InvalidWaveInputError(
                f"Channel '{channel.name}' has {len(channel)} samples, time axis has {len(data)}"
            )
        if not np.all(np.isfinite(channel.values)):
            raise InvalidWaveInputError(f"Channel '{channel.name}' contains NaN or infinite values")
        if np.ptp(channel.values) == 0:
            raise InvalidWaveInputError(f"Channel '{channel.name}' is flat")
    return data.time, pressure.values, flow.values


def wave_speed(pressure: Signal, flow: Signal, density: float = BLOOD_DENSITY) -> tuple[float, float]:
    """Single-point wave speed.

    Args:
        pressure: Pressure in pascals.
        flow: Flow velocity in m/s.
        density: Blood density in kg/m^3.

    Returns:
        Tuple of (wave speed in m/s, characteristic impedance rho*c).

    Raises:
        InvalidWaveInputError: If pressure or flow does not change.
    """
    if density <= 0:
        raise InvalidWaveInputError(f"Blood density must be positive, got {density}")
    sum_dp = float(np.sum(np.diff(pressure) ** 2))
    sum_du = float(np.sum(np.diff(flow) ** 2))
    if sum_du == 0.0 or sum_dp == 0.0:
        raise InvalidWaveInputError(
            "Cannot estimate wave speed: pressure or flow does not change over the beat"
        )
    rho_c = float(np.sqrt(sum_dp / sum_du))
    return rho_c / density, rho_c


def separate_wave_intensity(dp: Signal, du: Signal, rho_c: float) -> tuple[Signal, Signal]:
    """Forward and backward wave intensity from pressure and flow derivatives."""
    forward = (dp + rho_c * du) ** 2 / (4.0 * rho_c)
    backward = -((dp - rho_c * du) ** 2) / (4.0 * rho_c)
    return forward, backward


def separate_pressure_flow(
    dp: Signal, du: Signal, rho_c: float
) -> tuple[Signal, Signal, Signal, Signal]:
    """Forward and backward components of the pressure and flow derivatives.

    Returns:
        Tuple of (dP+, dP-, dU+, dU-), with ``dP+ + dP- = dP`` and
        ``dU+ + dU- = dU``.
    """
    dp_forward = (dp + rho_c * du) / 2.0
    dp_backward = (dp - rho_c * du) / 2.0
    return dp_forward, dp_backward, dp_forward / rho_c, -dp_backward / rho_c


@dataclass(frozen=True)
class WaveIntensityResult:
    """Wave intensity of one beat.

    All arrays have the length of the beat's time axis. Intensities are in
    W/m^2/s^2 (derivatives with respect to time).
    """

    time: Signal
    pressure: Signal
    flow: Signal
    density: float
    wave_speed: float
    rho_c: float
    pressure_derivative: Signal
    flow_derivative: Signal
    forward: Signal
    backward: Signal
    net: Signal
    forward_pressure: Signal
    backward_pressure: Signal
    forward_flow: Signal
    backward_flow: Signal
    waves: tuple[Wave, ...] = field(default_factory=tuple)

    @property
    def interval(self) -> float:
        return HemoData.calculate_average_interval(self.time)

    @property
    def cumulative_forward(self) -> float:
        return area_under_curve(self.interval, self.forward)

    @property
    def cumulative_backward(self) -> float:
        return area_under_curve(self.interval, self.backward)

    @property
    def cumulative_net(self) -> float:
        return area_under_curve(self.interval, self.net)

    def to_frame(self) -> pd.DataFrame:
        """Per-sample traces as a DataFrame indexed by time."""
        return pd.DataFrame(
            {
                "pressure": self.pressure,
                "flow": self.flow,
                "dP/dt": self.pressure_derivative,
                "dU/dt": self.flow_derivative,
                "WI forward": self.forward,
                "WI backward": self.backward,
                "WI net": self.net,
                "dP+": self.forward_pressure,
                "dP-": self.backward_pressure,
                "dU+": self.forward_flow,
                "dU-": self.backward_flow,
            },
            index=pd.Index(self.time, name="Time"),
        )


def compute_wave_intensity(
    data: HemoData,
    density: float = BLOOD_DENSITY,
    threshold: float = 0.05,
    min_samples: int = 3,
    detect: bool = True,
) -> WaveIntensityResult:
    """Run wave separation on one beat in canonical units.

    Args:
        data: Ensembled beat with time in s, pressure in Pa and flow in m/s.
        density: Blood density in kg/m^3.
        threshold: Wave detection threshold, see :func:`pywia.waves.detect_waves`.
        min_samples: Minimum samples per detected wave.
        detect: Whether to detect discrete waves.

    Returns:
        The wave intensity result.

    Raises:
        InvalidWaveInputError: If the input is unfit for analysis.
    """
    time, pressure, flow = validate_wave_input(data)
    speed, rho_c = wave_speed(pressure, flow, density)

    dt = differences(time)
    dp = differences(pressure) / dt
    du = differences(flow) / dt
    forward, backward = separate_wave_intensity(dp, du, rho_c)
    dp_forward, dp_backward, du_forward, du_backward = separate_pressure_flow(dp, du, rho_c)

    waves: tuple[Wave, ...] = ()
    if detect:
        waves = tuple(
            detect_waves(time, forward, backward, dp_forward, dp_backward, threshold, min_samples)
        )
    logger.info(f"'{data.name}': wave speed {speed:.3f} m/s, {len(waves)} waves")

    return WaveIntensityResult(
        time=time.copy(),
        pressure=pressure.copy(),
        flow=flow.copy(),
        density=density,
        wave_speed=speed,
        rho_c=rho_c,
        pressure_derivative=dp,
        flow_derivative=du,
        forward=forward,
        backward=backward,
        net=dp * du,
        forward_pressure=dp_forward,
        backward_pressure=dp_backward,
        forward_flow=du_forward,
        backward_flow=du_backward,
        waves=waves,
    )


class WIAData:
    """Analysis session for one ensembled beat.

    Holds the wave intensity result together with the user's edits: the
    list of waves, the systole and diastole markers and an optional manual
    end of the cycle. Pressures are reported in mmHg, flows in m/s and
    resistances in mmHg/(cm/s).

    Args:
        beat: Ensembled beat with pressure and flow units set.
        density: Blood density in kg/m^3.
        threshold: Wave detection threshold.
        min_samples: Minimum samples per detected wave.
        detect: Detect waves automatically.

    Raises:
        InvalidWaveInputError: If the beat is unfit for analysis.

    Examples:
        wia = WIAData(selection.ensemble(EnsembleType.TRIM))
        wia.set_systole_by_index(12)
        wia.set_diastole_by_index(140)
        summary = wia.summary()
    """

    def __init__(
        self,
        beat: Beat | HemoData,
        density: float = BLOOD_DENSITY,
        threshold: float = 0.05,
        min_samples: int = 3,
        detect: bool = True,
    ):
        data = beat.data if isinstance(beat, Beat) else beat
        try:
            self.data = data.to_canonical_units()
        except UnitConversionError as e:
            raise InvalidWaveInputError(f"Units of '{data.name}' are not set: {e}") from e
        self.name = data.name
        self._options = dict(density=density, threshold=threshold, min_samples=min_samples)
        self._detect = detect
        self.result = compute_wave_intensity(self.data, detect=detect, **self._options)
        self._waves: dict[str, Wave] = {wave.name: wave for wave in self.result.waves}
        self.systole_index: int | None = None
        self.diastole_index: int | None = None
        self.cycle_end_index: int | None = None

    def __repr__(self) -> str:
        return f"WIAData(name={self.name!r}, wave_speed={self.wave_speed:.3f}, waves={len(self._waves)})"

    def with_data(self, beat: Beat | HemoData) -> WIAData:
        """New session on different data with the same analysis options.

        Waves are detected afresh; markers are carried over when they still
        fall inside the new data.
        """
        other = WIAData(beat, detect=self._detect, **self._options)
        n = len(other.time)
        for attr in ("systole_index", "diastole_index", "cycle_end_index"):
            index = getattr(self, attr)
            if index is not None and index < n:
                setattr(other, attr, index)
        return other

    # Basic quantities

    @property
    def time(self) -> Signal:
        return self.result.time

    @property
    def wave_speed(self) -> float:
        return self.result.wave_speed

    @property
    def pressure_mmhg(self) -> Signal:
        return pascal_to_mmhg(self.result.pressure)

    @property
    def flow(self) -> Signal:
        return self.result.flow

    @property
    def _end_index(self) -> int:
        return len(self.time) - 1 if self.cycle_end_index is None else self.cycle_end_index

    @property
    def mean_pressure(self) -> float:
        """Mean pressure over the cycle in mmHg."""
        return float(np.mean(self.pressure_mmhg[: self._end_index + 1]))

    @property
    def mean_flow(self) -> float:
        """Mean flow velocity over the cycle in m/s."""
        return float(np.mean(self.flow[: self._end_index + 1]))

    @property
    def resistance(self) -> float:
        return compute_resistance(self.mean_pressure, self.mean_flow)

    # Waves

    @property
    def waves(self) -> list[Wave]:
        return sorted(self._waves.values(), key=lambda w: w.start_index)

    def wave(self, name: str) -> Wave:
        try:
            return self._waves[name]
        except KeyError:
            raise ValueError(f"No wave named '{name}' in '{self.name}'") from None

    def add_wave(
        self,
        name: str,
        classification: WaveClassification,
        start: int,
        end: int,
        forward: bool | None = None,
    ) -> Wave:
        """Add a wave picked by hand.

        Args:
            name: Unique wave name.
            classification: Named classification, or ``OTHER``.
            start: First sample.
            end: Last sample (inclusive).
            forward: Direction of an ``OTHER`` wave. Named waves know their
                direction.

        Raises:
            ValueError: If the name is taken or the direction is unknown.
            IndexOutOfRangeError: If the range is invalid.
        """
        if name in self._waves:
            raise ValueError(f"A wave named '{name}' already exists")
        if classification.category is not None:
            category = classification.category
        elif forward is None:
            raise ValueError(f"Direction of wave '{name}' must be given")
        else:
            check_wave_range(name, start, end, len(self.time))
            separated = self.result.forward_pressure if forward else self.result.backward_pressure
            compression = float(np.mean(separated[start : end + 1])) > 0
            category = WaveCategory.from_direction(forward, compression)
        intensity = self.result.forward if category.is_forward else self.result.backward
        wave = make_wave(name, classification, category, self.time, intensity, start, end)
        self._waves[name] = wave
        return wave

    def remove_wave(self, name: str) -> Wave:
        wave = self.wave(name)
        del self._waves[name]
        return wave

    def clear_waves(self) -> None:
        self._waves.clear()

    # Cycle phases

    def _check_index(self, index: int, what: str) -> int:
        if not 0 <= index < len(self.time):
            raise IndexOutOfRangeError(f"{what} index {index} is outside [0, {len(self.time)})")
        return int(index)

    def set_systole_by_index(self, index: int) -> None:
        self.systole_index = self._check_index(index, "Systole")

    def set_diastole_by_index(self, index: int) -> None:
        self.diastole_index = self._check_index(index, "Diastole")

    def set_cycle_end_by_index(self, index: int | None) -> None:
        """Mark the last sample of the cycle, or None to use the whole beat."""
        self.cycle_end_index = None if index is None else self._check_index(index, "Cycle end")

    def _markers(self) -> tuple[int, int, int]:
        if self.systole_index is None or self.diastole_index is None:
            raise PhaseNotSetError(f"Systole and diastole of '{self.name}' must be set first")
        return self.systole_index, self.diastole_index, self._end_index

    def phase_indices(self, phase: str) -> np.ndarray:
        """Sample indices of ``"systole"`` or ``"diastole"``.

        Systole runs from the systole marker up to the diastole marker,
        diastole from the diastole marker to the end of the cycle and, when
        diastole comes after systole, on from the start of the beat up to the
        systole marker.
        """
        systole, diastole, end = self._markers()
        if phase == "systole":
            start, stop = systole, diastole
        elif phase == "diastole":
            start, stop = diastole, systole
        else:
            raise ValueError(f"Phase must be 'systole' or 'diastole', got {phase!r}")
        if start < stop:
            return np.arange(start, stop)
        return np.concatenate((np.arange(start, end + 1), np.arange(0, stop)))

    def phase_means(self, phase: str) -> tuple[float, float]:
        """Mean pressure (mmHg) and flow (m/s) over one phase."""
        indices = self.phase_indices(phase)
        if indices.size == 0:
            raise PhaseNotSetError(f"The {phase} window of '{self.name}' is empty")
        return float(np.mean(self.pressure_mmhg[indices])), float(np.mean(self.flow[indices]))

    def phase_resistance(self, phase: str) -> float:
        return compute_resistance(*self.phase_means(phase))

    def diastole_duration(self) -> float | None:
        """Duration of diastole in seconds, None if the markers lie past the cycle end."""
        systole, diastole, end = self._markers()
        if systole > end and diastole > end:
            return None
        time = self.time
        if diastole > systole:
            return float((time[end] - time[diastole]) + (time[systole] - time[0]))
        return float(time[systole] - time[diastole])

    def diastole_to_peak_flow_duration(self) -> float | None:
        """Time from the onset of diastole to the peak flow of diastole in seconds."""
        systole, diastole, end = self._markers()
        if systole > end and diastole > end:
            return None
        time, flow = self.time, self.flow
        if diastole > systole:
            late = diastole + int(np.argmax(flow[diastole : end + 1]))
            early = int(np.argmax(flow[: systole + 1]))
            if flow[late] > flow[early]:
                return float(time[late] - time[diastole])
            return float((time[end] - time[diastole]) + (time[early] - time[0]))
        peak = diastole + int(np.argmax(flow[diastole : systole + 1]))
        return float(time[peak] - time[diastole])

    def cycle_duration(self) -> float | None:
        """Duration of the cycle in seconds, None if implausibly short."""
        duration = float(self.time[self._end_index] - self.time[0])
        return duration if duration >= MIN_CYCLE_DURATION else None

    # Tabular output

    def summary(self) -> pd.Series:
        """Scalar metrics of the analysis.

        Phase metrics are included only when systole and diastole are set.
        Every wave contributes its peak and cumulative intensity.
        """
        pressure = self.pressure_mmhg
        values: dict[str, object] = {
            "Selection Name": self.name,
            "Wave Speed (C) m/s": self.wave_speed,
            "Avg Pressure (mmHg)": self.mean_pressure,
            "Max Pressure (mmHg)": float(pressure.max()),
            "Min Pressure (mmHg)": float(pressure.min()),
            "Avg Flow (m/s)": self.mean_flow,
            "Max Flow (m/s)": float(self.flow.max()),
            "Min Flow (m/s)": float(self.flow.min()),
            "Avg Resist (mmHg/cm/s)": self.resistance,
            "Cycle duration (s)": self.cycle_duration(),
        }
        if self.systole_index is not None and self.diastole_index is not None:
            for phase in ("systole", "diastole"):
                label = phase.capitalize()
                index = getattr(self, f"{phase}_index")
                mean_pressure, mean_flow = self.phase_means(phase)
                values[f"{label} Time"] = float(self.time[index])
                values[f"{label} Pressure (mmHg)"] = float(pressure[index])
                values[f"{label} Flow (m/s)"] = float(self.flow[index])
                values[f"{label} Avg Pressure (mmHg)"] = mean_pressure
                values[f"{label} Avg Flow (m/s)"] = mean_flow
                values[f"{label} Resist (mmHg/cm/s)"] = compute_resistance(mean_pressure, mean_flow)
            values["Diastole duration (s)"] = self.diastole_duration()
            values["Diastole onset to peak velocity (s)"] = self.diastole_to_peak_flow_duration()
        values["Cumulative Net"] = self.result.cumulative_net
        values["Cumulative Forw"] = self.result.cumulative_forward
        values["Cumulative Back"] = self.result.cumulative_backward

        for wave in sorted(self._waves.values(), key=_report_order):
            values[f"{wave.name} Peak"] = wave.peak
            values[f"{wave.name} Cumulative"] = wave.cumulative_intensity
        return pd.Series(values, name=self.name)

    def waves_frame(self) -> pd.DataFrame:
        """One row per wave."""
        columns = [f for f in Wave.__dataclass_fields__]
        return pd.DataFrame([wave.to_dict() for wave in self.waves], columns=columns)


def _report_order(wave: Wave) -> tuple:
    named = wave.classification != WaveClassification.OTHER
    return (not named, not wave.is_forward, wave.classification.order, wave.name)


def compute_resistance(pressure_mmhg: float, flow_m_per_s: float) -> float:
    """Resistance in mmHg/(cm/s).

    Raises:
        InvalidWaveInputError: If the flow is zero.
    """
    flow_cm_per_s = flow_m_per_s * CM_PER_M
    if flow_cm_per_s == 0:
        raise InvalidWaveInputError("Cannot compute resistance with zero mean flow")
    return pressure_mmhg / flow_cm_per_s
