"""Savitzky-Golay smoothing and differentiation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
import scipy.ndimage
import scipy.signal

from ._logging import logger
from .exceptions import InvalidFilterSettingsError, LengthMismatchError
from .types import Signal

if TYPE_CHECKING:
    from .data import HemoData
    from .progress import ProgressRecorder


def validate_savgol_settings(window: int, poly_order: int, deriv: int = 0) -> None:
    """Check a Savitzky-Golay window/order combination.

    Args:
        window: Number of samples in the fitting window.
        poly_order: Order of the fitted polynomial.
        deriv: Order of the derivative to compute (0 smooths).

    Raises:
        InvalidFilterSettingsError: If the window is not an odd integer of at
            least 3, the order is negative, the window is smaller than
            ``poly_order + 2`` or ``deriv`` exceeds the order.
    """
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise InvalidFilterSettingsError(f"Window must be an integer, got {window!r}")
    if isinstance(poly_order, bool) or not isinstance(poly_order, (int, np.integer)):
        raise InvalidFilterSettingsError(f"Polynomial order must be an integer, got {poly_order!r}")
    if window < 3 or window % 2 == 0:
        raise InvalidFilterSettingsError(f"Window must be odd and at least 3, got {window}")
    if poly_order < 0:
        raise InvalidFilterSettingsError(f"Polynomial order must be >= 0, got {poly_order}")
    if window < poly_order + 2:
        raise InvalidFilterSettingsError(
            f"Window ({window}) must be at least polynomial order + 2 ({poly_order + 2})"
        )
    if not 0 <= deriv <= poly_order:
        raise InvalidFilterSettingsError(
            f"Derivative order must be between 0 and {poly_order}, got {deriv}"
        )


class SavitzkyGolayFilter:
    """Least-squares polynomial smoothing filter.

    The convolution coefficients are computed once on construction and reused
    for every call to :meth:`filter`. Edges are handled by repeating the edge
    sample, so the output always has the length of the input.

    Args:
        window: Odd window length, at least ``poly_order + 2``.
        poly_order: Polynomial order.
        deriv: Derivative order; 0 smooths.
        delta: Sample spacing, only used when ``deriv > 0``.

    Raises:
        InvalidFilterSettingsError: If the settings are invalid.

    Examples:
        >>> savgol = SavitzkyGolayFilter(window=11, poly_order=3)
        >>> smoothed = savgol.filter(noisy_pressure)
    """

    def __init__(self, window: int, poly_order: int, deriv: int = 0, delta: float = 1.0):
        validate_savgol_settings(window, poly_order, deriv)
        if delta <= 0:
            raise InvalidFilterSettingsError(f"Sample spacing must be positive, got {delta}")
        self.window = int(window)
        self.poly_order = int(poly_order)
        self.deriv = int(deriv)
        self.delta = float(delta)
        self.coefficients = scipy.signal.savgol_coeffs(
            self.window, self.poly_order, deriv=self.deriv, delta=self.delta, use="conv"
        )

    def __repr__(self) -> str:
        return (
            f"SavitzkyGolayFilter(window={self.window}, poly_order={self.poly_order}, "
            f"deriv={self.deriv})"
        )

    def filter(self, data: Signal) -> Signal:
        """Filter one array.

        Args:
            data: Samples, at least ``window`` long.

        Returns:
            Filtered samples of the same length.

        Raises:
            LengthMismatchError: If ``data`` is shorter than the window.
        """
        data = np.asarray(data, dtype=np.float64)
        if data.ndim != 1:
            raise ValueError(f"Data must be 1D, got shape {data.shape}")
        if data.size < self.window:
            raise LengthMismatchError(
                f"Data has {data.size} samples, shorter than the filter window ({self.window})"
            )
        return scipy.ndimage.convolve1d(data, self.coefficients, mode="nearest")

    def filter_channels(
        self,
        data: HemoData,
        channels: Sequence[str],
        progress: ProgressRecorder | None = None,
    ) -> None:
        """Filter several channels of a container in place.

        Args:
            data: Container to modify.
            channels: Names of the channels to filter.
            progress: Receives one update per filtered channel.
        """
        if progress is not None:
            progress.set_enabled(0, len(channels))
        for i, name in enumerate(channels, start=1):
            data.apply_filter(name, self.filter(data.values(name)))
            logger.debug(f"Applied {self!r} to '{name}'")
            if progress is not None:
                progress.set_progress(i)
