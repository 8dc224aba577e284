"""Alignment of channels on user-picked reference points.

Two channels recorded with a delay against each other (pressure against flow,
or two acquisition systems) are aligned by picking one reference sample in
each, for example the foot of the pressure and flow upstrokes. The adjusted
channel is shifted so that its reference sample falls on the same index as
the fixed channel's reference sample.

Without wrapping, samples that no longer have a partner are cropped and the
result is shorter. With wrapping, the adjusted channel is rotated and keeps
its length; the samples pushed off one end reappear at the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ._logging import logger
from .constants import ENSEMBLE_INTERVAL_TOLERANCE, MIN_MEAN_STEP, WRAP_DISCORDANCE_FACTOR
from .exceptions import AlignmentError, ExcessiveWrapDiscordanceError, IndexOutOfRangeError
from .types import Signal

if TYPE_CHECKING:
    from .data import HemoData


def wrap_discordance(values: Signal) -> tuple[float, float]:
    """Jump at the wrap seam and the mean absolute step of a series.

    Returns:
        Tuple of (``|values[-1] - values[0]|``, mean of ``|diff(values)|``).
        A zero mean step is replaced by a tiny positive value.
    """
    values = np.asarray(values, dtype=np.float64)
    seam = abs(values[-1] - values[0])
    mean_step = float(np.mean(np.abs(np.diff(values)))) if values.size > 1 else 0.0
    return float(seam), mean_step if mean_step > 0 else MIN_MEAN_STEP


def align_channels(
    data: HemoData,
    fixed: str,
    adjusted: str,
    fixed_index: int,
    adjusted_index: int,
    allow_wrap: bool = False,
    ignore_wrap_discordance: bool = False,
    discordance_factor: float = WRAP_DISCORDANCE_FACTOR,
) -> HemoData:
    """Shift one channel so its reference sample lines up with another's.

    Args:
        data: Container holding both channels. It is not modified.
        fixed: Channel that stays in place together with all other channels.
        adjusted: Channel that is shifted.
        fixed_index: Reference sample in ``fixed``.
        adjusted_index: Reference sample in ``adjusted``.
        allow_wrap: Rotate the adjusted channel instead of cropping.
        ignore_wrap_discordance: Skip the seam check when wrapping.
        discordance_factor: Allowed seam jump as a multiple of the mean
            absolute step of the adjusted channel.

    Returns:
        New container. Without wrapping, both reference samples end up at
        index ``min(fixed_index, adjusted_index)`` and the time axis starts at
        zero. With wrapping, both end up at ``fixed_index``.

    Raises:
        MissingChannelError: If a channel does not exist.
        IndexOutOfRangeError: If a reference index is outside the data.
        ExcessiveWrapDiscordanceError: If wrapping creates a seam jump larger
            than allowed and ``ignore_wrap_discordance`` is False.
        AlignmentError: If cropping would leave no samples.
    """
    data.channel(fixed)
    source = data.channel(adjusted)
    n = len(data)
    for label, index in (("fixed", fixed_index), ("adjusted", adjusted_index)):
        if not 0 <= index < n:
            raise IndexOutOfRangeError(f"The {label} reference index {index} is outside [0, {n})")

    delta = adjusted_index - fixed_index
    logger.info(
        f"Aligning '{adjusted}'[{adjusted_index}] to '{fixed}'[{fixed_index}] "
        f"({'wrap' if allow_wrap else 'crop'}, shift {delta})"
    )

    if allow_wrap:
        result = data.copy()
        if delta % n == 0:
            return result
        if not ignore_wrap_discordance:
            seam, mean_step = wrap_discordance(source.values)
            if seam > discordance_factor * mean_step:
                raise ExcessiveWrapDiscordanceError(
                    f"Wrapping '{adjusted}' joins values {seam:.4g} apart, more than "
                    f"{discordance_factor:g} times its mean step ({mean_step:.4g})"
                )
        result.apply_filter(adjusted, np.roll(source.values, -delta))
        return result

    length = n - abs(delta)
    if length <= 0:
        raise AlignmentError(f"Shift of {delta} samples leaves nothing of '{data.name}'")
    if delta >= 0:
        adjusted_slice, others_slice = slice(delta, delta + length), slice(0, length)
    else:
        adjusted_slice, others_slice = slice(0, length), slice(-delta, -delta + length)

    result = data.subset(data.name, others_slice.start, others_slice.stop)
    result.apply_filter(adjusted, source.values[adjusted_slice])
    result.time_channel.values = result.time - result.time[0]
    return result


@dataclass(frozen=True)
class AlignmentSpec:
    """One alignment request: a reference sample in each of two channels.

    Attributes:
        fixed_channel: Channel that stays in place.
        fixed_index: Reference sample in the fixed channel.
        adjusted_channel: Channel that is shifted.
        adjusted_index: Reference sample in the adjusted channel.
        allow_wrap: Rotate instead of crop.
        ignore_wrap_discordance: Skip the seam check when wrapping.
    """

    fixed_channel: str
    fixed_index: int
    adjusted_channel: str
    adjusted_index: int
    allow_wrap: bool = False
    ignore_wrap_discordance: bool = False

    def apply(self, data: HemoData, discordance_factor: float = WRAP_DISCORDANCE_FACTOR) -> HemoData:
        return align_channels(
            data,
            self.fixed_channel,
            self.adjusted_channel,
            self.fixed_index,
            self.adjusted_index,
            allow_wrap=self.allow_wrap,
            ignore_wrap_discordance=self.ignore_wrap_discordance,
            discordance_factor=discordance_factor,
        )


def merge_aligned(
    first: HemoData,
    second: HemoData,
    first_index: int,
    second_index: int,
    name: str | None = None,
    tolerance: float = ENSEMBLE_INTERVAL_TOLERANCE,
) -> HemoData:
    """Combine two recordings of one event into one container.

    Used when pressure and flow come from separate acquisition systems. Both
    containers must already share a sample interval (resample them first).
    The result covers only the samples around the two reference indices that
    exist in both recordings; its time axis starts at zero.

    Args:
        first: First recording. Its time unit is kept.
        second: Second recording.
        first_index: Reference sample in ``first``.
        second_index: Reference sample in ``second`` marking the same event.
        name: Name of the result. Defaults to the first container's name.
        tolerance: Allowed difference between the two sample intervals.

    Returns:
        New container with the channels of both inputs. Channels of the second
        container whose names already exist are prefixed with its name.

    Raises:
        IndexOutOfRangeError: If a reference index is outside its container.
        AlignmentError: If the sample intervals or time units differ.
    """
    from .data import HemoData

    for label, data, index in (("first", first, first_index), ("second", second, second_index)):
        if not 0 <= index < len(data):
            raise IndexOutOfRangeError(
                f"Reference index {index} is outside the {label} container ({len(data)} samples)"
            )
    if first.time_unit != second.time_unit:
        raise AlignmentError(
            f"Time units differ: {first.time_unit.value} and {second.time_unit.value}"
        )
    interval = first.average_interval
    if abs(interval - second.average_interval) > tolerance:
        raise AlignmentError(
            f"Sample intervals differ ({interval} and {second.average_interval}); "
            "resample both recordings to a common interval first"
        )

    before = min(first_index, second_index)
    after = min(len(first) - first_index, len(second) - second_index)
    first_part = first.subset(first.name, first_index - before, first_index + after)
    second_part = second.subset(second.name, second_index - before, second_index + after)

    result = HemoData(
        first_part.time - first_part.time[0],
        name=first.name if name is None else name,
        time_unit=first.time_unit,
        source=first.source,
        time_name=first.time_channel.name,
    )
    for channel in first_part:
        result.add_channel(channel.name, channel.values, *channel.roles, unit=channel.unit)
    for channel in second_part:
        channel_name = channel.name
        if channel_name in result or channel_name == result.time_channel.name:
            channel_name = f"{second.name} {channel.name}"
        result.add_channel(channel_name, channel.values, *channel.roles, unit=channel.unit)
    logger.info(
        f"Merged '{first.name}' and '{second.name}' into {len(result)} samples "
        f"({before} before and {after - 1} after the reference)"
    )
    return result
