"""Discrete waves in separated wave intensity.

A wave is a contiguous run of samples in the forward or backward wave
intensity during which the separated pressure change keeps one sign:
compression waves raise pressure, expansion (decompression) waves lower it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from enum import Enum

import numpy as np

from ._logging import logger
from .exceptions import IndexOutOfRangeError, InvalidWaveInputError
from .types import Signal
from .utils import absolute_max, area_under_curve


class WaveCategory(str, Enum):
    """Direction of travel and effect on pressure."""

    FORWARD_COMPRESSION = "forward_compression"
    FORWARD_EXPANSION = "forward_expansion"
    BACKWARD_COMPRESSION = "backward_compression"
    BACKWARD_EXPANSION = "backward_expansion"

    @property
    def is_forward(self) -> bool:
        return self in (WaveCategory.FORWARD_COMPRESSION, WaveCategory.FORWARD_EXPANSION)

    @property
    def is_compression(self) -> bool:
        return self in (WaveCategory.FORWARD_COMPRESSION, WaveCategory.BACKWARD_COMPRESSION)

    @property
    def is_accelerating(self) -> bool:
        """Forward compression and backward expansion accelerate flow."""
        return self in (WaveCategory.FORWARD_COMPRESSION, WaveCategory.BACKWARD_EXPANSION)

    @classmethod
    def from_direction(cls, forward: bool, compression: bool) -> WaveCategory:
        if forward:
            return cls.FORWARD_COMPRESSION if compression else cls.FORWARD_EXPANSION
        return cls.BACKWARD_COMPRESSION if compression else cls.BACKWARD_EXPANSION


class WaveClassification(Enum):
    """Named waves of the coronary cardiac cycle.

    Each member carries its abbreviation, a readable label, its category and
    its position in the usual order of appearance within its direction.
    ``OTHER`` has no category or order.
    """

    FCW = ("FCW", "Forward Compression Wave", WaveCategory.FORWARD_COMPRESSION, 1)
    FDW = ("FDW", "Forward Decompression Wave", WaveCategory.FORWARD_EXPANSION, 2)
    LFCW = ("FCW2", "Late Forward Compression Wave", WaveCategory.FORWARD_COMPRESSION, 3)
    EBCW = ("BCWearly", "Early Backward Compression Wave", WaveCategory.BACKWARD_COMPRESSION, 1)
    LBCW = ("BCWlate", "Late Backward Compression Wave", WaveCategory.BACKWARD_COMPRESSION, 2)
    BDW = ("BEW", "Backward Decompression Wave", WaveCategory.BACKWARD_EXPANSION, 3)
    OTHER = ("Other", "Other", None, 0)

    def __init__(self, abbreviation: str, label: str, category: WaveCategory | None, order: int):
        self.abbreviation = abbreviation
        self.label = label
        self.category = category
        self.order = order

    @property
    def is_forward(self) -> bool | None:
        return None if self.category is None else self.category.is_forward

    @property
    def is_accelerating(self) -> bool | None:
        return None if self.category is None else self.category.is_accelerating

    @classmethod
    def from_abbreviation(cls, abbreviation: str) -> WaveClassification:
        for member in cls:
            if member.abbreviation.lower() == abbreviation.lower():
                return member
        return cls.OTHER

    @staticmethod
    def is_naturally_ordered(classifications: Sequence[WaveClassification]) -> bool:
        """Whether named waves of one direction appear in their usual order.

        ``OTHER`` entries are ignored.
        """
        for direction in (True, False):
            orders = [c.order for c in classifications if c.is_forward is direction]
            if orders != sorted(orders):
                return False
        return True


@dataclass(frozen=True)
class Wave:
    """One discrete wave.

    Attributes:
        name: Display name, the classification abbreviation for named waves.
        classification: Named classification, ``OTHER`` if unnamed.
        category: Direction and pressure effect.
        start_index: First sample of the wave.
        end_index: Last sample of the wave (inclusive).
        start_time: Time of the first sample.
        end_time: Time of the last sample.
        peak_index: Sample with the largest intensity magnitude.
        peak: Intensity at the peak.
        peak_time: Time of the peak.
        cumulative_intensity: Integral of intensity over the wave. Positive
            for forward waves, negative for backward waves.
    """

    name: str
    classification: WaveClassification
    category: WaveCategory
    start_index: int
    end_index: int
    start_time: float
    end_time: float
    peak_index: int
    peak: float
    peak_time: float
    cumulative_intensity: float

    @property
    def is_forward(self) -> bool:
        return self.category.is_forward

    @property
    def n_samples(self) -> int:
        return self.end_index - self.start_index + 1

    def overlaps(self, other: Wave) -> bool:
        return self.start_index <= other.end_index and other.start_index <= self.end_index

    def to_dict(self) -> dict:
        result = asdict(self)
        result["classification"] = self.classification.abbreviation
        result["category"] = self.category.value
        return result


def check_wave_range(name: str, start: int, end: int, n_samples: int) -> None:
    """Raise :class:`IndexOutOfRangeError` unless ``[start, end]`` holds at least 2 of ``n_samples``."""
    if start < 0 or end >= n_samples or end - start < 1:
        raise IndexOutOfRangeError(
            f"Wave '{name}' range [{start}, {end}] is invalid for {n_samples} samples"
        )


def make_wave(
    name: str,
    classification: WaveClassification,
    category: WaveCategory,
    time: Signal,
    intensity: Signal,
    start: int,
    end: int,
) -> Wave:
    """Measure a wave on the intensity of its direction.

    Args:
        name: Wave name.
        classification: Named classification.
        category: Direction and pressure effect.
        time: Time axis in seconds.
        intensity: Forward intensity for forward waves, backward otherwise.
        start: First sample.
        end: Last sample (inclusive).

    Raises:
        IndexOutOfRangeError: If the range is outside the data or has fewer
            than 2 samples.
    """
    check_wave_range(name, start, end, len(intensity))
    if classification.category not in (None, category):
        raise InvalidWaveInputError(
            f"{classification.abbreviation} is a {classification.category.value} wave, "
            f"not {category.value}"
        )
    segment = intensity[start : end + 1]
    interval = float((time[end] - time[start]) / (end - start))
    peak_offset, peak = absolute_max(segment)
    return Wave(
        name=name,
        classification=classification,
        category=category,
        start_index=start,
        end_index=end,
        start_time=float(time[start]),
        end_time=float(time[end]),
        peak_index=start + peak_offset,
        peak=peak,
        peak_time=float(time[start + peak_offset]),
        cumulative_intensity=area_under_curve(interval, segment),
    )


def _runs(mask: np.ndarray) -> list[tuple[int, int]]:
    """Inclusive index ranges where ``mask`` is True."""
    padded = np.concatenate(([False], mask, [False]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    return [(int(s), int(e) - 1) for s, e in zip(edges[::2], edges[1::2])]


def find_wave_ranges(
    intensity: Signal,
    separated_pressure: Signal,
    compression: bool,
    threshold: float,
    min_samples: int,
) -> list[tuple[int, int]]:
    """Ranges of one direction's intensity forming compression or expansion waves.

    Runs of constant sign of the separated pressure change are bounded by its
    zero crossings, which are also the zero crossings of the intensity. A run
    qualifies when it spans at least ``min_samples`` samples and its peak
    intensity reaches ``threshold`` times the largest intensity magnitude of
    the direction.
    """
    intensity = np.asarray(intensity, dtype=np.float64)
    largest = float(np.max(np.abs(intensity))) if intensity.size else 0.0
    if largest == 0.0:
        return []
    mask = separated_pressure > 0 if compression else separated_pressure < 0
    ranges = []
    for start, end in _runs(mask):
        if end - start + 1 < max(min_samples, 2):
            continue
        if np.max(np.abs(intensity[start : end + 1])) < threshold * largest:
            continue
        ranges.append((start, end))
    return ranges


_NAMED_SEQUENCE = {
    WaveCategory.FORWARD_COMPRESSION: (WaveClassification.FCW, WaveClassification.LFCW),
    WaveCategory.FORWARD_EXPANSION: (WaveClassification.FDW,),
    WaveCategory.BACKWARD_COMPRESSION: (WaveClassification.EBCW, WaveClassification.LBCW),
    WaveCategory.BACKWARD_EXPANSION: (WaveClassification.BDW,),
}


def detect_waves(
    time: Signal,
    forward: Signal,
    backward: Signal,
    forward_pressure: Signal,
    backward_pressure: Signal,
    threshold: float = 0.05,
    min_samples: int = 3,
) -> list[Wave]:
    """Find and classify the discrete waves of one beat.

    Within each category, waves are named in order of appearance: the first
    forward compression wave is the FCW, the second the late FCW, the first
    and second backward compression waves the early and late BCW, and so on.
    Waves beyond the named ones are classified as ``OTHER``.

    Args:
        time: Time axis in seconds.
        forward: Forward wave intensity.
        backward: Backward wave intensity.
        forward_pressure: Forward separated pressure change.
        backward_pressure: Backward separated pressure change.
        threshold: Minimum peak of a wave relative to the largest intensity
            of its direction.
        min_samples: Minimum number of samples in a wave.

    Returns:
        Waves sorted by start time.
    """
    waves: list[Wave] = []
    directions = (
        (True, forward, forward_pressure),
        (False, backward, backward_pressure),
    )
    n_other = 0
    for is_forward, intensity, pressure in directions:
        for compression in (True, False):
            category = WaveCategory.from_direction(is_forward, compression)
            names = _NAMED_SEQUENCE[category]
            ranges = find_wave_ranges(intensity, pressure, compression, threshold, min_samples)
            for i, (start, end) in enumerate(ranges):
                if i < len(names):
                    classification = names[i]
                    name = classification.abbreviation
                else:
                    n_other += 1
                    classification = WaveClassification.OTHER
                    name = f"Other {n_other}"
                waves.append(
                    make_wave(name, classification, category, time, intensity, start, end)
                )
    waves.sort(key=lambda w: (w.start_index, not w.is_forward))
    logger.debug(f"Detected {len(waves)} waves: {[w.name for w in waves]}")
    return waves


def waves_by_category(waves: Iterable[Wave], category: WaveCategory) -> list[Wave]:
    return [wave for wave in waves if wave.category == category]
