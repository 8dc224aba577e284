"""Multi-channel time-series container.

:class:`HemoData` holds one strictly increasing time axis and any number of
named channels of equal length (pressure, flow, ECG, R-wave markers, ...).
Each channel carries a set of :class:`~pywia.types.ChannelRole` tags and an
optional :class:`~pywia.types.Unit`.

Operations named ``apply_*``, ``trim_by_index`` and the unit setters change
the container in place. ``copy``, ``blank_copy``, ``skeleton_copy``,
``subset``, ``resample_at``, ``copy_with_y_alignment`` and
``to_canonical_units`` return new containers and leave the receiver alone.
A container is not safe for concurrent mutation.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from . import units as unit_conversion
from ._logging import logger
from .constants import EPSILON, WRAP_DISCORDANCE_FACTOR
from .exceptions import (
    IndexOutOfRangeError,
    LengthMismatchError,
    MissingChannelError,
    ReadOnlyDataError,
    TimeAxisError,
    UnitConversionError,
)
from .types import ChannelRole, Signal, Unit
from .utils import closest_index, differences

if TYPE_CHECKING:
    from .progress import ProgressRecorder


@dataclass
class Channel:
    """One named series of samples.

    Attributes:
        name: Channel name, unique within a container.
        values: Samples as a float64 array. Copied on construction.
        roles: Roles of the channel, e.g. ``{ChannelRole.PRESSURE}``.
        unit: Physical unit, or None if unknown.
    """

    name: str
    values: Signal
    roles: set[ChannelRole] = field(default_factory=set)
    unit: Unit | None = None

    def __post_init__(self) -> None:
        self.values = np.array(self.values, dtype=np.float64)
        if self.values.ndim != 1:
            raise ValueError(f"Channel '{self.name}' must be 1D, got shape {self.values.shape}")
        self.roles = set(self.roles)

    def __setattr__(self, name: str, value: object) -> None:
        if getattr(self, "_frozen", False):
            raise ReadOnlyDataError(f"Channel '{self.name}' is read-only")
        super().__setattr__(name, value)

    def __len__(self) -> int:
        return self.values.size

    def has_role(self, role: ChannelRole) -> bool:
        return role in self.roles

    def freeze(self) -> None:
        """Make the channel read-only. Copies of it are writable again."""
        self.values.flags.writeable = False
        self.roles = frozenset(self.roles)
        self._frozen = True

    def copy(self, values: Signal | None = None) -> Channel:
        """Copy the channel, optionally with different values."""
        return Channel(
            name=self.name,
            values=self.values if values is None else values,
            roles=set(self.roles),
            unit=self.unit,
        )


class HemoData:
    """Ordered multi-channel time series sharing one time axis.

    Args:
        time: Strictly increasing time values.
        name: Name of the recording or selection.
        time_unit: Unit of ``time``.
        source: Provenance, e.g. the file the data came from.
        time_name: Name of the time channel.

    Raises:
        TimeAxisError: If ``time`` is not 1D, finite and strictly increasing.

    Examples:
        data = HemoData(np.arange(0, 1, 0.005), name="baseline")
        data.add_channel("Pa", pressure, ChannelRole.PRESSURE, unit=Unit.MMHG)
        data.add_channel("Flow", flow, ChannelRole.FLOW, unit=Unit.CM_PER_S)
    """

    def __init__(
        self,
        time: Signal,
        name: str = "",
        time_unit: Unit = Unit.SECONDS,
        source: str | None = None,
        time_name: str = "Time",
    ):
        if time_unit.role != ChannelRole.TIME:
            raise UnitConversionError(f"{time_unit.value} is not a time unit")
        self.name = name
        self.source = source
        self._time = Channel(time_name, time, {ChannelRole.TIME}, time_unit)
        self._check_time(self._time.values)
        self._channels: dict[str, Channel] = {}
        self._read_only = False

    @staticmethod
    def _check_time(time: Signal) -> None:
        if time.ndim != 1 or time.size == 0:
            raise TimeAxisError("Time axis must be a non-empty 1D array")
        if not np.all(np.isfinite(time)):
            raise TimeAxisError("Time axis contains NaN or infinite values")
        if time.size > 1 and not np.all(np.diff(time) > 0):
            raise TimeAxisError("Time axis must be strictly increasing")

    @property
    def read_only(self) -> bool:
        return self._read_only

    def freeze(self) -> None:
        """Make the container and its channels read-only.

        In-place operations then raise :class:`ReadOnlyDataError`. Copies are
        writable.
        """
        self._time.freeze()
        for channel in self._channels.values():
            channel.freeze()
        self._read_only = True

    def _check_writable(self) -> None:
        if self._read_only:
            raise ReadOnlyDataError(f"'{self.name}' is read-only, modify a copy instead")

    def __len__(self) -> int:
        return len(self._time)

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(self._channels.values())

    def __repr__(self) -> str:
        return (
            f"HemoData(name={self.name!r}, samples={len(self)}, "
            f"channels={self.channel_names})"
        )

    @property
    def time(self) -> Signal:
        return self._time.values

    @property
    def time_channel(self) -> Channel:
        return self._time

    @property
    def time_unit(self) -> Unit:
        return self._time.unit

    @property
    def channel_names(self) -> list[str]:
        return list(self._channels)

    @property
    def duration(self) -> float:
        return float(self.time[-1] - self.time[0])

    @property
    def average_interval(self) -> float:
        return self.calculate_average_interval(self.time)

    @property
    def sampling_frequency(self) -> float:
        """Samples per time unit (Hz when the time axis is in seconds)."""
        return 1.0 / self.average_interval

    @staticmethod
    def calculate_average_interval(time: Signal) -> float:
        """Mean spacing of a time axis.

        Args:
            time: Time values.

        Returns:
            ``(time[-1] - time[0]) / (len(time) - 1)``.

        Raises:
            LengthMismatchError: If fewer than two samples are given.
        """
        time = np.asarray(time, dtype=np.float64)
        if time.size < 2:
            raise LengthMismatchError("Need at least 2 time samples to compute an interval")
        return float((time[-1] - time[0]) / (time.size - 1))

    def needs_resample(self, interval: float) -> bool:
        """Whether ``interval`` differs from the current average interval."""
        return abs(self.average_interval - interval) > EPSILON

    def validate(self) -> None:
        """Check the co-length and time axis invariants.

        Raises:
            TimeAxisError: If the time axis is malformed.
            LengthMismatchError: If a channel differs in length from the time axis.
        """
        self._check_time(self.time)
        for channel in self._channels.values():
            if len(channel) != len(self):
                raise LengthMismatchError(
                    f"Channel '{channel.name}' has {len(channel)} samples, "
                    f"time axis has {len(self)}"
                )

    # Channel access

    def add_channel(
        self,
        name: str,
        values: Signal,
        *roles: ChannelRole,
        unit: Unit | None = None,
        replace: bool = False,
    ) -> Channel:
        """Add a channel.

        Args:
            name: Channel name.
            values: Samples, same length as the time axis.
            *roles: Roles of the channel.
            unit: Physical unit.
            replace: Overwrite an existing channel of the same name.

        Returns:
            The new channel.

        Raises:
            ValueError: If the name is taken and ``replace`` is False, or
                clashes with the time channel.
            LengthMismatchError: If the length differs from the time axis.
        """
        self._check_writable()
        if name == self._time.name:
            raise ValueError(f"'{name}' is the name of the time channel")
        if name in self._channels and not replace:
            raise ValueError(f"Channel '{name}' already exists in '{self.name}'")
        if ChannelRole.TIME in roles:
            raise ValueError("A container has exactly one time channel")
        channel = Channel(name, values, set(roles), unit)
        if len(channel) != len(self):
            raise LengthMismatchError(
                f"Channel '{name}' has {len(channel)} samples, time axis has {len(self)}"
            )
        self._channels[name] = channel
        return channel

    def remove_channel(self, name: str) -> Channel:
        self._check_writable()
        channel = self.channel(name)
        del self._channels[name]
        return channel

    def channel(self, name: str) -> Channel:
        """Return the channel called ``name``.

        Raises:
            MissingChannelError: If there is no such channel.
        """
        try:
            return self._channels[name]
        except KeyError:
            raise MissingChannelError(f"No channel '{name}' in '{self.name}'") from None

    def values(self, name: str) -> Signal:
        return self.channel(name).values

    def channels_by_role(self, role: ChannelRole) -> list[Channel]:
        """All channels carrying ``role`` in insertion order."""
        if role == ChannelRole.TIME:
            return [self._time]
        return [ch for ch in self._channels.values() if role in ch.roles]

    def channel_by_role(self, role: ChannelRole) -> Channel:
        """First channel carrying ``role``.

        Raises:
            MissingChannelError: If no channel has the role.
        """
        matches = self.channels_by_role(role)
        if not matches:
            raise MissingChannelError(f"No {role.value} channel in '{self.name}'")
        return matches[0]

    def has_role(self, name: str, role: ChannelRole) -> bool:
        if name == self._time.name:
            return role == ChannelRole.TIME
        return self.channel(name).has_role(role)

    def add_roles(self, name: str, *roles: ChannelRole) -> None:
        self._check_writable()
        if ChannelRole.TIME in roles:
            raise ValueError("The time role is reserved for the time channel")
        self.channel(name).roles.update(roles)

    def remove_roles(self, name: str, *roles: ChannelRole) -> None:
        self._check_writable()
        self.channel(name).roles.difference_update(roles)

    def role_signature(self) -> frozenset[frozenset[ChannelRole]]:
        """Role sets of all channels, used to check structural compatibility."""
        return frozenset(frozenset(ch.roles) for ch in self._channels.values())

    def set_unit(self, name: str, unit: Unit | None) -> None:
        """Declare the unit of a channel without converting its values."""
        self._check_writable()
        channel = self.channel(name)
        if unit is not None and unit.role not in channel.roles:
            logger.warning(
                f"Channel '{name}' has roles {sorted(r.value for r in channel.roles)} "
                f"but is assigned unit {unit.value}"
            )
        channel.unit = unit

    def guess_units(self) -> None:
        """Assign units to pressure and flow channels that have none.

        Units are guessed from the value ranges. Channels whose range is
        ambiguous keep no unit.
        """
        self._check_writable()
        for channel in self.channels_by_role(ChannelRole.PRESSURE):
            if channel.unit is None:
                channel.unit = unit_conversion.guess_pressure_unit(channel.values)
        for channel in self.channels_by_role(ChannelRole.FLOW):
            if channel.unit is None:
                channel.unit = unit_conversion.guess_flow_unit(channel.values)

    # Unit conversion

    def convert_time_units(self, unit: Unit) -> None:
        """Convert the time axis in place."""
        self._check_writable()
        self._time.values = unit_conversion.convert(self.time, self._time.unit, unit)
        self._time.unit = unit

    def convert_units(self, name: str, unit: Unit) -> None:
        """Convert a channel's values in place.

        Raises:
            UnitConversionError: If the channel has no unit or the units measure
                different quantities.
        """
        self._check_writable()
        channel = self.channel(name)
        if channel.unit is None:
            raise UnitConversionError(f"Channel '{name}' has no unit to convert from")
        channel.values = unit_conversion.convert(channel.values, channel.unit, unit)
        channel.unit = unit

    def to_canonical_units(self) -> HemoData:
        """Copy with time in seconds, pressure in pascals and flow in m/s.

        Raises:
            UnitConversionError: If a pressure or flow channel has no unit.
        """
        result = self.copy()
        result.convert_time_units(Unit.SECONDS)
        for role in (ChannelRole.PRESSURE, ChannelRole.FLOW):
            for channel in result.channels_by_role(role):
                if channel.unit is None:
                    raise UnitConversionError(
                        f"{role.value.capitalize()} channel '{channel.name}' has no unit"
                    )
                result.convert_units(channel.name, unit_conversion.canonical_unit(channel.unit))
        return result

    # Derived series

    def differences(self, name: str) -> Signal:
        """Forward differences of a channel, last difference repeated."""
        return differences(self.values(name))

    def derivative(self, name: str) -> Signal:
        """Time derivative of a channel from forward differences."""
        return self.differences(name) / differences(self.time)

    # Copies

    def copy(self, name: str | None = None) -> HemoData:
        """Deep, writable copy, optionally renamed."""
        result = HemoData(
            self.time,
            name=self.name if name is None else name,
            time_unit=self._time.unit,
            source=self.source,
            time_name=self._time.name,
        )
        for channel in self._channels.values():
            result._channels[channel.name] = channel.copy()
        return result

    def blank_copy(self, name: str) -> HemoData:
        """Copy with the same channels, roles and units but zeroed values."""
        result = self.copy(name)
        for channel in result._channels.values():
            channel.values = np.zeros_like(channel.values)
        return result

    def skeleton_copy(self, name: str, *channels: str) -> HemoData:
        """Copy holding the time axis and only the listed channels."""
        result = HemoData(
            self.time,
            name=name,
            time_unit=self._time.unit,
            source=self.source,
            time_name=self._time.name,
        )
        for channel_name in channels:
            result._channels[channel_name] = self.channel(channel_name).copy()
        return result

    def subset(self, name: str, start: int, end: int) -> HemoData:
        """Copy of samples ``[start, end)``; time values are kept as they are.

        Raises:
            IndexOutOfRangeError: If the range is empty or outside the data.
        """
        if start < 0 or end > len(self) or start >= end:
            raise IndexOutOfRangeError(
                f"Invalid subset [{start}, {end}) of '{self.name}' with {len(self)} samples"
            )
        return self._sliced(slice(start, end), name)

    def _sliced(self, index: slice, name: str) -> HemoData:
        result = HemoData(
            self.time[index],
            name=name,
            time_unit=self._time.unit,
            source=self.source,
            time_name=self._time.name,
        )
        for channel in self._channels.values():
            result._channels[channel.name] = channel.copy(channel.values[index])
        return result

    # In-place operations

    def trim_by_index(self, start: int, end: int) -> None:
        """Keep samples ``[start, end]`` (inclusive) of every channel.

        The time axis is shifted so the first kept sample is at zero. Trimming
        to the full extent leaves the container untouched.

        Raises:
            IndexOutOfRangeError: If ``start < 0``, ``end >= len(self)`` or
                ``start > end``.
        """
        self._check_writable()
        n = len(self)
        if start < 0 or end >= n or start > end:
            raise IndexOutOfRangeError(
                f"Cannot trim '{self.name}' with {n} samples to [{start}, {end}]"
            )
        if start == 0 and end == n - 1:
            return

        index = slice(start, end + 1)
        time = self.time[index]
        self._time.values = time - time[0]
        for channel in self._channels.values():
            channel.values = channel.values[index].copy()
        logger.debug(f"Trimmed '{self.name}' to samples [{start}, {end}]")

    def apply_index_offset(self, name: str, n_samples: int) -> None:
        """Shift one channel against the others by a number of samples.

        A positive offset advances the channel: its sample at index
        ``i + n_samples`` ends up at index ``i``. The leading samples of the
        channel and the trailing samples of all other channels are dropped; the
        time axis is cropped together with the other channels.

        Raises:
            MissingChannelError: If the channel does not exist.
            IndexOutOfRangeError: If the offset leaves no samples.
        """
        self._check_writable()
        target = self.channel(name)
        n = len(self)
        if n_samples == 0:
            return
        if abs(n_samples) >= n:
            raise IndexOutOfRangeError(
                f"Cannot offset '{name}' by {n_samples} samples, only {n} available"
            )

        k = abs(n_samples)
        if n_samples > 0:
            target_index, others_index = slice(k, n), slice(0, n - k)
        else:
            target_index, others_index = slice(0, n - k), slice(k, n)

        for channel in self._channels.values():
            index = target_index if channel is target else others_index
            channel.values = channel.values[index].copy()
        self._time.values = self.time[others_index].copy()
        logger.debug(f"Offset '{name}' by {n_samples} samples")

    def apply_x_offset(self, name: str, offset: float) -> None:
        """Shift one channel against the others by a time offset.

        The offset is in the time axis unit and rounded to the nearest whole
        number of samples. See :meth:`apply_index_offset` for the direction.
        """
        self._check_writable()
        self.channel(name)
        if offset == 0:
            return
        elapsed = self.time - self.time[0]
        n_samples = closest_index(elapsed, abs(offset))
        if abs(offset) > self.duration:
            n_samples = len(self)
        self.apply_index_offset(name, n_samples if offset > 0 else -n_samples)

    def apply_filter(self, name: str, filtered: Signal) -> None:
        """Replace a channel's values with filtered values.

        Raises:
            MissingChannelError: If the channel does not exist.
            LengthMismatchError: If ``filtered`` differs in length.
        """
        self._check_writable()
        channel = self.channel(name)
        filtered = np.asarray(filtered, dtype=np.float64)
        if filtered.shape != channel.values.shape:
            raise LengthMismatchError(
                f"Filtered data for '{name}' has {filtered.size} samples, expected {len(channel)}"
            )
        channel.values = filtered.copy()

    # Copy-returning transformations

    def resample_at(self, interval: float, progress: ProgressRecorder | None = None) -> HemoData:
        """Resample onto a uniform grid, see :func:`pywia.resampling.resample_series`."""
        from .resampling import resample_series

        return resample_series(self, interval, progress=progress)

    def copy_with_y_alignment(
        self,
        first_channel: str,
        second_channel: str,
        first_index: int,
        second_index: int,
        allow_wrap: bool = False,
        ignore_wrap_discordance: bool = False,
        discordance_factor: float = WRAP_DISCORDANCE_FACTOR,
    ) -> HemoData:
        """Align two channels on one reference index each.

        The channel whose reference index is lower is moved so that its
        reference sample lines up with the other channel's reference sample.
        See :func:`pywia.alignment.align_channels` for the policies.
        """
        from .alignment import align_channels

        if first_index <= second_index:
            fixed, fixed_index, adjusted, adjusted_index = (
                second_channel,
                second_index,
                first_channel,
                first_index,
            )
        else:
            fixed, fixed_index, adjusted, adjusted_index = (
                first_channel,
                first_index,
                second_channel,
                second_index,
            )
        return align_channels(
            self,
            fixed,
            adjusted,
            fixed_index,
            adjusted_index,
            allow_wrap=allow_wrap,
            ignore_wrap_discordance=ignore_wrap_discordance,
            discordance_factor=discordance_factor,
        )

    # Tabular form

    def to_frame(self) -> pd.DataFrame:
        """Channels as DataFrame columns indexed by time.

        Roles and units are kept in ``DataFrame.attrs``.
        """
        frame = pd.DataFrame(
            {name: ch.values for name, ch in self._channels.items()},
            index=pd.Index(self.time, name=self._time.name),
        )
        frame.attrs["name"] = self.name
        frame.attrs["time_unit"] = self._time.unit.value
        frame.attrs["roles"] = {
            name: sorted(role.value for role in ch.roles) for name, ch in self._channels.items()
        }
        frame.attrs["units"] = {
            name: ch.unit.value for name, ch in self._channels.items() if ch.unit is not None
        }
        return frame

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        name: str | None = None,
        roles: Mapping[str, ChannelRole | Iterable[ChannelRole]] | None = None,
        units: Mapping[str, Unit] | None = None,
        time_column: str | None = None,
        time_unit: Unit | None = None,
    ) -> HemoData:
        """Build a container from a DataFrame.

        Args:
            frame: One column per channel. The time axis is ``time_column`` if
                given, else the index.
            name: Container name. Defaults to ``frame.attrs["name"]``.
            roles: Roles per column. Defaults to ``frame.attrs["roles"]``.
            units: Unit per column. Defaults to ``frame.attrs["units"]``.
            time_column: Column holding time values.
            time_unit: Unit of the time axis. Defaults to seconds.

        Returns:
            New container.
        """
        attrs = frame.attrs
        if time_column is not None:
            time = frame[time_column].to_numpy(dtype=np.float64)
            time_name = time_column
            columns = [c for c in frame.columns if c != time_column]
        else:
            time = frame.index.to_numpy(dtype=np.float64)
            time_name = frame.index.name or "Time"
            columns = list(frame.columns)

        if roles is None:
            roles = {k: [ChannelRole(r) for r in v] for k, v in attrs.get("roles", {}).items()}
        if units is None:
            units = {k: Unit(v) for k, v in attrs.get("units", {}).items()}
        if time_unit is None:
            time_unit = Unit(attrs.get("time_unit", Unit.SECONDS.value))

        data = cls(
            time,
            name=attrs.get("name", "") if name is None else name,
            time_unit=time_unit,
            time_name=str(time_name),
        )
        for column in columns:
            column_roles = roles.get(column, ())
            if isinstance(column_roles, ChannelRole):
                column_roles = (column_roles,)
            data.add_channel(
                str(column),
                frame[column].to_numpy(dtype=np.float64),
                *column_roles,
                unit=units.get(column),
            )
        return data
