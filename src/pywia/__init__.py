"""pywia: wave intensity analysis of coronary and arterial pressure and flow.

This package provides the numeric core of a wave intensity workflow: a
multi-channel time-series container, Savitzky-Golay smoothing, resampling,
alignment of channels on reference points, beat ensembling, and separation of
pressure and flow into forward and backward wave intensity with detection of
the discrete waves of a cardiac cycle.
"""

from ._logging import logger, set_log_file, set_log_level
from .alignment import AlignmentSpec, align_channels, merge_aligned
from .beats import Beat, BeatSelection, EnsembleType, ensemble_average, ensemble_flow_pressure
from .config import (
    AlignArgs,
    ConfigLoader,
    EnsembleArgs,
    FilterArgs,
    ResampleArgs,
    Settings,
    WaveArgs,
)
from .core import WIAPipeline, analyze_selections
from .data import Channel, HemoData
from .exceptions import (
    AlignmentError,
    EmptySegmentError,
    ExcessiveWrapDiscordanceError,
    IncompatibleBeatSetError,
    IndexOutOfRangeError,
    IntervalTooLargeError,
    InvalidFilterSettingsError,
    InvalidWaveInputError,
    LengthMismatchError,
    MissingChannelError,
    NonPositiveIntervalError,
    PhaseNotSetError,
    ReadOnlyDataError,
    ResampleError,
    SeriesTooShortError,
    TimeAxisError,
    UnitConversionError,
    WIAError,
)
from .filtering import SavitzkyGolayFilter
from .progress import ProgressRecorder, TqdmProgressRecorder
from .resampling import calculate_resample_interval, resample_series, resample_to_length
from .rwave import find_r_waves, mark_r_waves, split_beats
from .types import ChannelRole, Unit
from .utils import area_components, area_under_curve
from .waves import Wave, WaveCategory, WaveClassification, detect_waves
from .wia import WaveIntensityResult, WIAData, compute_wave_intensity, wave_speed

__version__ = "1.0.0-alpha.1"
__all__ = [
    "__version__",
    "logger",
    "set_log_level",
    "set_log_file",
    "Settings",
    "FilterArgs",
    "ResampleArgs",
    "AlignArgs",
    "EnsembleArgs",
    "WaveArgs",
    "ConfigLoader",
    "WIAPipeline",
    "analyze_selections",
    "ChannelRole",
    "Unit",
    "Channel",
    "HemoData",
    "SavitzkyGolayFilter",
    "resample_series",
    "resample_to_length",
    "calculate_resample_interval",
    "AlignmentSpec",
    "align_channels",
    "merge_aligned",
    "Beat",
    "BeatSelection",
    "EnsembleType",
    "ensemble_flow_pressure",
    "ensemble_average",
    "find_r_waves",
    "mark_r_waves",
    "split_beats",
    "Wave",
    "WaveCategory",
    "WaveClassification",
    "detect_waves",
    "WaveIntensityResult",
    "WIAData",
    "compute_wave_intensity",
    "wave_speed",
    "area_under_curve",
    "area_components",
    "ProgressRecorder",
    "TqdmProgressRecorder",
    "WIAError",
    "InvalidFilterSettingsError",
    "LengthMismatchError",
    "IndexOutOfRangeError",
    "MissingChannelError",
    "TimeAxisError",
    "UnitConversionError",
    "ReadOnlyDataError",
    "ResampleError",
    "NonPositiveIntervalError",
    "IntervalTooLargeError",
    "SeriesTooShortError",
    "AlignmentError",
    "ExcessiveWrapDiscordanceError",
    "IncompatibleBeatSetError",
    "InvalidWaveInputError",
    "EmptySegmentError",
    "PhaseNotSetError",
]


def __dir__():
    return __all__
