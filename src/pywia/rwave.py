"""R-wave detection and beat splitting.

R peaks are found with neurokit2. Several detection methods are tried in
turn until one finds at least two peaks, the minimum needed to cut a beat.
"""

from __future__ import annotations

from collections.abc import Sequence

import neurokit2 as nk
import numpy as np

from ._logging import logger
from .beats import Beat
from .data import HemoData
from .exceptions import IndexOutOfRangeError
from .types import ChannelRole, IndexArray, Signal, Unit
from .units import convert

_METHODS_FINDPEAKS = [
    "neurokit",
    "pantompkins",
    "hamilton",
    "elgendi",
    "kalidas",
]


def find_r_waves(
    ecg: Signal,
    sfreq: float,
    methods: Sequence[str] | None = None,
) -> IndexArray:
    """Locate R peaks in an ECG trace.

    Args:
        ecg: ECG samples.
        sfreq: Sampling frequency in Hz.
        methods: neurokit2 peak detection methods to try, in order. Defaults
            to a list starting with "neurokit".

    Returns:
        Sorted sample indices of the R peaks; empty if none were found.

    Raises:
        ValueError: If the ECG is not 1D or the sampling frequency is not positive.
    """
    ecg = np.asarray(ecg, dtype=np.float64)
    if ecg.ndim != 1:
        raise ValueError(f"ECG must be 1D, got shape {ecg.shape}")
    if sfreq <= 0:
        raise ValueError(f"Sampling frequency must be positive, got {sfreq}")

    best = np.array([], dtype=np.int64)
    for method in methods or _METHODS_FINDPEAKS:
        _, peaks_info = nk.ecg_peaks(ecg, sampling_rate=sfreq, method=method)
        r_peaks = peaks_info["ECG_R_Peaks"]
        n_r_peaks = len(r_peaks) if r_peaks is not None else 0
        if not n_r_peaks:
            logger.debug(f"No R-peaks detected for method '{method}'.")
            continue
        r_peaks = np.sort(np.asarray(r_peaks, dtype=np.int64))
        if n_r_peaks > 1:
            logger.debug(f"Found {n_r_peaks} R-peaks with method '{method}'")
            return r_peaks
        if n_r_peaks > best.size:
            best = r_peaks
    logger.warning(f"Fewer than 2 R-peaks detected; returning {best.size}")
    return best


def mark_r_waves(
    data: HemoData,
    ecg_channel: str | None = None,
    name: str = "R wave",
    methods: Sequence[str] | None = None,
) -> IndexArray:
    """Detect R peaks in a container's ECG and store them as a marker channel.

    The marker channel is 1 at every R peak and 0 elsewhere, and carries the
    ``R_WAVE`` role. An existing channel of the same name is replaced.

    Args:
        data: Container to modify.
        ecg_channel: ECG channel name. Defaults to the first ECG channel.
        name: Name of the marker channel.
        methods: neurokit2 detection methods to try.

    Returns:
        The R peak indices.
    """
    ecg = data.channel_by_role(ChannelRole.ECG) if ecg_channel is None else data.channel(ecg_channel)
    sfreq = 1.0 / convert(np.array([data.average_interval]), data.time_unit, Unit.SECONDS)[0]
    r_peaks = find_r_waves(ecg.values, sfreq, methods)
    markers = np.zeros(len(data))
    markers[r_peaks] = 1.0
    data.add_channel(name, markers, ChannelRole.R_WAVE, replace=True)
    return r_peaks


def split_beats(data: HemoData, r_peaks: Sequence[int] | IndexArray) -> list[Beat]:
    """Cut a recording into beats running from one R peak to the next.

    Args:
        data: Recording to cut. It is not modified.
        r_peaks: R peak indices.

    Returns:
        One beat per pair of consecutive peaks. Beats are named
        ``"<recording> beat <n>"``; pairs too close together are skipped.

    Raises:
        IndexOutOfRangeError: If a peak index lies outside the recording.
    """
    r_peaks = np.sort(np.asarray(r_peaks, dtype=np.int64))
    if r_peaks.size and (r_peaks[0] < 0 or r_peaks[-1] >= len(data)):
        raise IndexOutOfRangeError(
            f"R peaks must lie within the {len(data)} samples of '{data.name}'"
        )
    beats = []
    for i, (start, stop) in enumerate(zip(r_peaks[:-1], r_peaks[1:]), start=1):
        try:
            beats.append(Beat.from_range(data, int(start), int(stop) - 1, f"{data.name} beat {i}"))
        except IndexOutOfRangeError as e:
            logger.debug(f"Skipping beat {i} of '{data.name}': {e}")
    logger.info(f"Split '{data.name}' into {len(beats)} beats")
    return beats
