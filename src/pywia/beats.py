"""Single cardiac cycles, named groups of them, and beat ensembling.

Ensembling turns a group of beats into one representative beat by averaging
them sample by sample. Beats rarely have the same length, so they are first
brought to a common length:

- ``EnsembleType.TRIM`` truncates every beat to the shortest one. Raw samples
  are kept, the end of longer cycles is lost.
- ``EnsembleType.SCALE`` stretches every beat to the longest one by linear
  interpolation, so late-cycle features line up across beats of different
  duration.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from ._logging import logger
from .constants import ENSEMBLE_INTERVAL_TOLERANCE, MIN_BEAT_SPAN
from .data import Channel, HemoData
from .exceptions import IncompatibleBeatSetError, IndexOutOfRangeError, MissingChannelError
from .resampling import resample_to_length
from .types import ChannelRole, Signal


class EnsembleType(str, Enum):
    """How beats of different lengths are brought to a common length."""

    TRIM = "trim"
    SCALE = "scale"


@dataclass(frozen=True)
class Beat:
    """One cardiac cycle.

    Attributes:
        data: The samples of the cycle. Its time axis starts at zero. The beat
            keeps a read-only copy, so the container passed in stays writable.
        source: Name of the recording the beat was cut from.
        start_index: First sample in the source recording, if known.
        end_index: Last sample (inclusive) in the source recording, if known.
    """

    data: HemoData
    source: str | None = None
    start_index: int | None = None
    end_index: int | None = None

    @classmethod
    def from_range(cls, data: HemoData, start: int, end: int, name: str | None = None) -> Beat:
        """Cut a beat out of a recording.

        Args:
            data: Recording to cut from. It is not modified.
            start: First sample of the beat.
            end: Last sample of the beat (inclusive).
            name: Name of the beat. Defaults to the recording's name.

        Raises:
            IndexOutOfRangeError: If the range lies outside the recording or
                spans too few samples.
        """
        if start < 0 or end >= len(data):
            raise IndexOutOfRangeError(
                f"Beat [{start}, {end}] is outside '{data.name}' with {len(data)} samples"
            )
        if end - start <= MIN_BEAT_SPAN:
            raise IndexOutOfRangeError(
                f"Beat [{start}, {end}] must span more than {MIN_BEAT_SPAN} samples"
            )
        beat_data = data.subset(data.name if name is None else name, start, end + 1)
        beat_data.time_channel.values = beat_data.time - beat_data.time[0]
        return cls(beat_data, source=data.source or data.name, start_index=start, end_index=end)

    def __post_init__(self) -> None:
        data = self.data.copy()
        data.freeze()
        object.__setattr__(self, "data", data)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def time(self) -> Signal:
        return self.data.time

    @property
    def pressure(self) -> Channel | None:
        return self._first(ChannelRole.PRESSURE)

    @property
    def flow(self) -> Channel | None:
        return self._first(ChannelRole.FLOW)

    @property
    def ecg(self) -> Channel | None:
        return self._first(ChannelRole.ECG)

    def _first(self, role: ChannelRole) -> Channel | None:
        channels = self.data.channels_by_role(role)
        return channels[0] if channels else None

    def overlaps(self, other: Beat) -> bool:
        """Whether two beats were cut from overlapping ranges of one recording."""
        if None in (self.start_index, self.end_index, other.start_index, other.end_index):
            return False
        if self.source != other.source:
            return False
        return self.start_index <= other.end_index and other.start_index <= self.end_index

    def editable_copy(self) -> HemoData:
        """Writable copy of the beat's data."""
        return self.data.copy()


class BeatSelection:
    """Named group of beats that are ensembled together.

    Beats can be filed under subtypes (e.g. "rest" and "hyperaemia" within one
    selection). Subtype labels are case-insensitive.

    Args:
        name: Name of the selection; becomes the name of the ensembled beat.

    Raises:
        ValueError: If the name is empty.

    Examples:
        selection = BeatSelection("Adenosine")
        for beat in beats:
            selection.add_beat(beat)
        ensembled = selection.ensemble(EnsembleType.SCALE)
    """

    DEFAULT_SUBTYPE = "default"

    def __init__(self, name: str):
        if not name or not name.strip():
            raise ValueError("Beat selection name must not be empty")
        self.name = name
        self._beats: dict[str, list[Beat]] = {}

    def __len__(self) -> int:
        return self.n_beats()

    def __repr__(self) -> str:
        return f"BeatSelection(name={self.name!r}, beats={self.n_beats()})"

    @property
    def subtypes(self) -> list[str]:
        return list(self._beats)

    def add_beat(self, beat: Beat, subtype: str = DEFAULT_SUBTYPE) -> None:
        self._beats.setdefault(subtype.lower(), []).append(beat)

    def beats(self, subtype: str | None = None) -> list[Beat]:
        """Beats of one subtype, or all beats in insertion order."""
        if subtype is not None:
            return list(self._beats.get(subtype.lower(), []))
        return [beat for group in self._beats.values() for beat in group]

    def n_beats(self, subtype: str | None = None) -> int:
        return len(self.beats(subtype))

    def validate(self) -> None:
        """Check that the selection can be ensembled.

        Raises:
            IncompatibleBeatSetError: If it holds no beats or beats with
                different channel roles.
        """
        _check_compatible(self.beats(), self.name)

    def ensemble(
        self,
        ensemble_type: EnsembleType = EnsembleType.TRIM,
        subtype: str | None = None,
        tolerance: float = ENSEMBLE_INTERVAL_TOLERANCE,
    ) -> Beat:
        """Ensemble pressure and flow of the selection's beats."""
        return ensemble_flow_pressure(self.beats(subtype), ensemble_type, self.name, tolerance)


def _check_compatible(beats: Sequence[Beat], name: str) -> None:
    if not beats:
        raise IncompatibleBeatSetError(f"Selection '{name}' has no beats to ensemble")
    signature = beats[0].data.role_signature()
    for beat in beats[1:]:
        if beat.data.role_signature() != signature:
            raise IncompatibleBeatSetError(
                f"Beat '{beat.name}' has different channel roles than '{beats[0].name}'"
            )


def _common_interval(beats: Sequence[Beat], tolerance: float) -> float:
    intervals = np.array([beat.data.average_interval for beat in beats])
    if np.ptp(intervals) > tolerance:
        raise IncompatibleBeatSetError(
            f"Beats have different sample intervals ({intervals.min():.6g} to "
            f"{intervals.max():.6g}); resample them to a common interval first"
        )
    return float(np.mean(intervals))


def _stack(series: Iterable[Signal], ensemble_type: EnsembleType, n: int) -> np.ndarray:
    if ensemble_type == EnsembleType.TRIM:
        return np.vstack([values[:n] for values in series])
    return np.vstack([resample_to_length(values, n) for values in series])


def _target_length(beats: Sequence[Beat], ensemble_type: EnsembleType) -> int:
    lengths = [len(beat) for beat in beats]
    return min(lengths) if ensemble_type == EnsembleType.TRIM else max(lengths)


def _ensemble_channels(
    beats: Sequence[Beat],
    channel_sets: list[list[Channel]],
    ensemble_type: EnsembleType,
    name: str,
    tolerance: float,
) -> Beat:
    ensemble_type = EnsembleType(ensemble_type)
    interval = _common_interval(beats, tolerance)
    n = _target_length(beats, ensemble_type)

    first = beats[0].data
    result = HemoData(
        np.arange(n) * interval,
        name=name,
        time_unit=first.time_unit,
        time_name=first.time_channel.name,
    )
    for position, reference in enumerate(channel_sets[0]):
        units = {channels[position].unit for channels in channel_sets}
        if len(units) > 1:
            raise IncompatibleBeatSetError(
                f"Channel '{reference.name}' has different units across beats: "
                f"{sorted(u.value if u is not None else 'none' for u in units)}"
            )
        stacked = _stack((channels[position].values for channels in channel_sets), ensemble_type, n)
        result.add_channel(
            reference.name, stacked.mean(axis=0), *reference.roles, unit=reference.unit
        )

    logger.info(
        f"Ensembled {len(beats)} beats into '{name}' ({ensemble_type.value}, {n} samples)"
    )
    return Beat(result, source=name)


def ensemble_flow_pressure(
    beats: Sequence[Beat],
    ensemble_type: EnsembleType,
    name: str,
    tolerance: float = ENSEMBLE_INTERVAL_TOLERANCE,
) -> Beat:
    """Average the pressure and flow of several beats into one beat.

    Args:
        beats: Beats to combine. All must have the same channel roles, a
            pressure and a flow channel with matching units, and the same
            sample interval.
        ensemble_type: ``TRIM`` or ``SCALE``.
        name: Name of the ensembled beat, usually the selection name.
        tolerance: Allowed spread of the beats' sample intervals.

    Returns:
        Beat with one pressure and one flow channel. Its time axis starts at
        zero and steps by the mean sample interval of the inputs.

    Raises:
        IncompatibleBeatSetError: If the beats cannot be combined.

    Examples:
        >>> ensembled = ensemble_flow_pressure(beats, EnsembleType.TRIM, "Baseline")
        >>> len(ensembled) == min(len(b) for b in beats)
        True
    """
    _check_compatible(beats, name)
    channel_sets = []
    for beat in beats:
        try:
            channels = [
                beat.data.channel_by_role(ChannelRole.PRESSURE),
                beat.data.channel_by_role(ChannelRole.FLOW),
            ]
        except MissingChannelError as e:
            raise IncompatibleBeatSetError(f"Beat '{beat.name}': {e}") from e
        channel_sets.append(channels)
    return _ensemble_channels(beats, channel_sets, ensemble_type, name, tolerance)


def ensemble_average(
    beats: Sequence[Beat],
    ensemble_type: EnsembleType,
    name: str,
    tolerance: float = ENSEMBLE_INTERVAL_TOLERANCE,
) -> Beat:
    """Average every channel of several beats into one beat.

    Channels are matched by position; all beats must carry the same channel
    roles in the same order. Otherwise behaves like
    :func:`ensemble_flow_pressure`.
    """
    _check_compatible(beats, name)
    channel_sets = [list(beat.data) for beat in beats]
    roles = [[frozenset(ch.roles) for ch in channels] for channels in channel_sets]
    if any(r != roles[0] for r in roles[1:]):
        raise IncompatibleBeatSetError(f"Beats in '{name}' order their channels differently")
    return _ensemble_channels(beats, channel_sets, ensemble_type, name, tolerance)
