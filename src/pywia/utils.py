"""Shared numeric helpers used across the package.

This module provides the sign-aware area-under-curve integration, extremum and
index lookups on sampled signals, and the timing log helpers used by the
longer-running steps.
"""

import time

import numpy as np

from ._logging import logger
from .exceptions import EmptySegmentError
from .types import Signal


def area_components(interval: float, values: Signal) -> tuple[float, float]:
    """Positive and negative area under uniformly sampled values.

    Each interval is integrated with the trapezoid rule. An interval whose end
    points lie on opposite sides of zero is split at the linear zero crossing,
    so its positive triangle counts towards the positive area and its negative
    triangle towards the negative area.

    Args:
        interval: Sample interval (x spacing), must be positive.
        values: Sampled y values.

    Returns:
        Tuple of (positive area, negative area); the negative area is <= 0.

    Raises:
        EmptySegmentError: If fewer than two values are given.
        ValueError: If the interval is not positive.

    Examples:
        >>> area_components(1.0, np.array([3.0, -1.0]))
        (1.125, -0.125)
    """
    y = np.asarray(values, dtype=np.float64)
    if y.size < 2:
        raise EmptySegmentError(f"Need at least 2 samples to integrate, got {y.size}")
    if interval <= 0:
        raise ValueError(f"Sample interval must be positive, got {interval}")

    y0 = y[:-1]
    y1 = y[1:]
    trapezoids = (y0 + y1) * interval / 2.0
    positive = np.where((y0 >= 0) & (y1 >= 0), trapezoids, 0.0)
    negative = np.where((y0 <= 0) & (y1 <= 0), trapezoids, 0.0)

    crossing = ((y0 > 0) & (y1 < 0)) | ((y0 < 0) & (y1 > 0))
    if np.any(crossing):
        a0 = y0[crossing]
        a1 = y1[crossing]
        # Each side of the crossing is a triangle whose base is proportional
        # to the magnitude of its end point.
        abs_sum = np.abs(a0) + np.abs(a1)
        pos0, pos1 = np.maximum(a0, 0.0), np.maximum(a1, 0.0)
        neg0, neg1 = np.minimum(a0, 0.0), np.minimum(a1, 0.0)
        positive[crossing] = interval * (pos0**2 + pos1**2) / (2.0 * abs_sum)
        negative[crossing] = -interval * (neg0**2 + neg1**2) / (2.0 * abs_sum)
    return float(np.sum(positive)), float(np.sum(negative))


def area_under_curve(interval: float, values: Signal) -> float:
    """Signed area under uniformly sampled values.

    The sum of the positive and negative parts from :func:`area_components`.

    Examples:
        >>> area_under_curve(0.5, np.array([0.0, 3.0, -1.0, 0.0]))
        1.0
    """
    positive, negative = area_components(interval, values)
    return positive + negative


def absolute_max(values: Signal) -> tuple[int, float]:
    """Return index and value of the sample with the largest magnitude."""
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise EmptySegmentError("Cannot take the maximum of an empty array")
    idx = int(np.argmax(np.abs(values)))
    return idx, float(values[idx])


def closest_index(values: Signal, target: float) -> int:
    """Index of the sample closest to ``target``; ties go to the first."""
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise EmptySegmentError("Cannot search an empty array")
    return int(np.argmin(np.abs(values - target)))


def differences(values: Signal) -> Signal:
    """Forward differences with the last value repeated to keep the length.

    Examples:
        >>> differences(np.array([1.0, 3.0, 6.0]))
        array([2., 3., 3.])
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size < 2:
        raise EmptySegmentError(f"Need at least 2 samples for differences, got {values.size}")
    diff = np.diff(values)
    return np.append(diff, diff[-1])


def nearest_multiple_above(value: float, step: float) -> float:
    """Smallest multiple of ``step`` that is >= ``value``."""
    return float(np.ceil(value / step - 1e-9) * step)


def log_start(step_name: str, n_items: int) -> float:
    """Log the start of a processing step and return the current time.

    Args:
        step_name: Name of the step, e.g. "Resampling".
        n_items: Number of channels, beats or samples being processed.

    Returns:
        Current time.
    """
    logger.info("Starting %s for %s items...", step_name, n_items)
    return time.time()


def log_end(step_name: str, start_time: float, n_samples: int) -> None:
    """Log the end of a processing step.

    Args:
        step_name: Name of the step.
        start_time: Value returned by :func:`log_start`.
        n_samples: Length of the produced series.
    """
    logger.info(
        "Completed %s. Samples: %s. Time taken: %.2f s",
        step_name,
        n_samples,
        time.time() - start_time,
    )
