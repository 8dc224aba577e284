"""Exceptions raised by pywia.

Every error derives from :class:`WIAError`, which is a ``ValueError``, so code
catching ``ValueError`` keeps working while callers that need to tell failures
apart can catch the specific classes.
"""


class WIAError(ValueError):
    """Base class for all pywia errors."""


class InvalidFilterSettingsError(WIAError):
    """Savitzky-Golay window and polynomial order do not form a valid filter."""


class LengthMismatchError(WIAError):
    """Arrays that must have equal length do not."""


class IndexOutOfRangeError(WIAError, IndexError):
    """An index or index range lies outside the data."""


class MissingChannelError(WIAError, KeyError):
    """A channel name or role was requested that the container does not hold."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnitConversionError(WIAError):
    """A channel cannot be converted to the requested unit."""


class ReadOnlyDataError(WIAError):
    """An in-place operation was attempted on read-only data, such as a beat."""


class ResampleError(WIAError):
    """Resampling cannot be performed."""


class NonPositiveIntervalError(ResampleError):
    """The requested sample interval is zero or negative."""


class IntervalTooLargeError(ResampleError):
    """The requested sample interval exceeds the duration of the series."""


class SeriesTooShortError(ResampleError):
    """The series has too few samples to be resampled."""


class AlignmentError(WIAError):
    """Two reference points cannot be aligned."""


class ExcessiveWrapDiscordanceError(AlignmentError):
    """Wrapping a channel would introduce a large jump at the seam."""


class IncompatibleBeatSetError(WIAError):
    """Beats cannot be ensembled together."""


class InvalidWaveInputError(WIAError):
    """Pressure and flow are missing or degenerate for wave intensity analysis."""


class EmptySegmentError(WIAError):
    """A segment is too short to integrate."""


class TimeAxisError(WIAError):
    """The time axis is not a strictly increasing finite series."""


class PhaseNotSetError(WIAError):
    """Systole or diastole has not been marked yet."""
