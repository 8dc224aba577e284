"""Resampling of time series onto uniform grids.

Continuous channels are linearly interpolated. Marker channels holding at most
two distinct values (R-wave markers, alignment flags) are not interpolated:
every non-zero marker is moved to the nearest new sample so markers stay
sharp.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ._logging import logger
from .constants import EPSILON
from .exceptions import (
    IntervalTooLargeError,
    LengthMismatchError,
    NonPositiveIntervalError,
    SeriesTooShortError,
)
from .types import Signal
from .utils import log_end, log_start

if TYPE_CHECKING:
    from .data import HemoData
    from .progress import ProgressRecorder


def _check_interval(interval: float, duration: float, name: str) -> None:
    if interval <= 0:
        raise NonPositiveIntervalError(f"Resample interval must be positive, got {interval}")
    if interval > duration:
        raise IntervalTooLargeError(
            f"Resample interval {interval} exceeds the duration of '{name}' ({duration})"
        )


def uniform_grid(start: float, end: float, interval: float) -> Signal:
    """Grid ``start + k * interval`` covering ``[start, end]``."""
    n = int(np.floor((end - start) / interval + EPSILON)) + 1
    return start + np.arange(n) * interval


def is_binary(values: Signal) -> bool:
    """Whether a series is a marker channel: zero plus at most one other value."""
    distinct = np.unique(values)
    return distinct.size <= 2 and bool(np.any(distinct == 0))


def _resample_markers(time: Signal, values: Signal, new_time: Signal) -> Signal:
    result = np.zeros(new_time.size)
    marked = np.flatnonzero(values)
    if marked.size:
        nearest = np.searchsorted(new_time, time[marked])
        nearest = np.clip(nearest, 1, new_time.size - 1)
        left_closer = (time[marked] - new_time[nearest - 1]) <= (new_time[nearest] - time[marked])
        nearest = np.where(left_closer, nearest - 1, nearest)
        result[nearest] = values[marked]
    return result


def resample_series(
    data: HemoData,
    interval: float,
    progress: ProgressRecorder | None = None,
) -> HemoData:
    """Resample every channel of a container onto a uniform grid.

    The new grid starts at the first original time value and steps by
    ``interval`` up to the last original time value.

    Args:
        data: Container to resample. It is not modified.
        interval: New sample interval in the container's time unit.
        progress: Receives one update per resampled channel.

    Returns:
        New container with the same channels, roles and units.

    Raises:
        SeriesTooShortError: If the container has fewer than 2 samples.
        NonPositiveIntervalError: If ``interval <= 0``.
        IntervalTooLargeError: If ``interval`` exceeds the duration.
        LengthMismatchError: If channels and time axis differ in length.
    """
    from .data import HemoData

    if len(data) < 2:
        raise SeriesTooShortError(f"'{data.name}' has {len(data)} samples, need at least 2")
    data.validate()
    _check_interval(interval, data.duration, data.name)

    time = data.time
    new_time = uniform_grid(time[0], time[-1], interval)
    channels = list(data)

    start = log_start("resampling", len(channels))
    if progress is not None:
        progress.set_enabled(0, len(channels))

    result = HemoData(
        new_time,
        name=data.name,
        time_unit=data.time_unit,
        source=data.source,
        time_name=data.time_channel.name,
    )
    for i, channel in enumerate(channels, start=1):
        if is_binary(channel.values):
            values = _resample_markers(time, channel.values, new_time)
        else:
            values = np.interp(new_time, time, channel.values)
        result.add_channel(channel.name, values, *channel.roles, unit=channel.unit)
        if progress is not None:
            progress.set_progress(i)

    log_end("resampling", start, len(new_time))
    logger.debug(f"Resampled '{data.name}' from {len(time)} to {len(new_time)} samples")
    return result


def resample_to_length(values: Signal, n: int) -> Signal:
    """Linearly stretch or compress a series to ``n`` samples.

    Both end points are kept; intermediate samples are interpolated on a
    normalised 0-1 axis.

    Raises:
        SeriesTooShortError: If ``values`` has fewer than 2 samples or ``n < 2``.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size < 2 or n < 2:
        raise SeriesTooShortError(f"Cannot resample {values.size} samples to {n}")
    if values.size == n:
        return values.copy()
    return np.interp(np.linspace(0.0, 1.0, n), np.linspace(0.0, 1.0, values.size), values)


def calculate_resample_interval(
    requested: float | str,
    *time_arrays: Signal,
    oversample_level: int = 0,
) -> float:
    """Choose the interval for resampling one or more series to a common grid.

    Args:
        requested: Requested interval, as a number or numeric string.
        *time_arrays: Time axes of the series that will be resampled.
        oversample_level: When > 0, the interval is capped at the smallest
            average interval of the inputs divided by this factor.

    Returns:
        The interval to resample at.

    Raises:
        ValueError: If ``requested`` is not numeric or no time axes are given.
        NonPositiveIntervalError: If the requested interval is not positive.
        IntervalTooLargeError: If it exceeds the duration of any series.
        SeriesTooShortError: If a series has fewer than 2 samples.

    Examples:
        >>> calculate_resample_interval("0.001", pressure_time, flow_time)
        0.001
    """
    try:
        interval = float(requested)
    except (TypeError, ValueError):
        raise ValueError(f"Resample interval must be numeric, got {requested!r}") from None
    if not time_arrays:
        raise ValueError("At least one time axis is required")

    average_intervals = []
    for i, time in enumerate(time_arrays):
        time = np.asarray(time, dtype=np.float64)
        if time.size < 2:
            raise SeriesTooShortError(f"Series {i} has {time.size} samples, need at least 2")
        if time.ndim != 1:
            raise LengthMismatchError(f"Series {i} time axis must be 1D")
        _check_interval(interval, float(time[-1] - time[0]), f"series {i}")
        average_intervals.append((time[-1] - time[0]) / (time.size - 1))

    if oversample_level > 0:
        interval = min(interval, min(average_intervals) / oversample_level)
    logger.info(f"Resample interval: {interval}")
    return float(interval)
