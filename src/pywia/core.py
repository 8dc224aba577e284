"""Main wave intensity analysis orchestrator."""

from collections.abc import Iterable
from pathlib import Path

import numpy as np
import pandas as pd

from ._logging import logger
from .alignment import AlignmentSpec
from .beats import Beat, BeatSelection, ensemble_flow_pressure
from .config import ConfigLoader, Settings
from .data import HemoData
from .filtering import SavitzkyGolayFilter
from .progress import ProgressRecorder
from .resampling import calculate_resample_interval
from .types import ChannelRole, Unit
from .units import convert
from .utils import log_end, log_start
from .wia import WIAData


class WIAPipeline:
    """Runs recordings and beat selections through the analysis steps.

    The steps follow the order of a manual analysis: resample, smooth and
    align each recording, cut beats, ensemble each selection and analyse the
    ensembled beat.

    Args:
        settings: Complete settings. Defaults to :class:`Settings()`.

    Examples:
        pipeline = WIAPipeline()
        data = pipeline.prepare(recording)
        wia = pipeline.analyze(selection)
        print(wia.summary())
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings if settings is not None else Settings()
        self._savgol = None
        if self.settings.filter.enabled:
            self._savgol = SavitzkyGolayFilter(
                self.settings.filter.window, self.settings.filter.poly_order
            )

    def prepare(self, data: HemoData, progress: ProgressRecorder | None = None) -> HemoData:
        """Resample and smooth a recording as configured.

        Args:
            data: Recording. It is not modified.
            progress: Receives progress of the resampling and filtering steps.

        Returns:
            A prepared copy.
        """
        result = data.copy()
        resample = self.settings.resample
        if resample.enabled:
            # Settings hold seconds, the container may count in milliseconds
            requested = convert(np.array([resample.interval]), Unit.SECONDS, data.time_unit)[0]
            interval = calculate_resample_interval(
                requested, data.time, oversample_level=resample.oversample_level
            )
            if result.needs_resample(interval):
                result = result.resample_at(interval, progress=progress)
            else:
                logger.info(
                    f"'{data.name}' is already sampled at {interval} {data.time_unit.value}, not resampling"
                )

        if self._savgol is not None:
            channels = [
                ch.name
                for role in (ChannelRole.PRESSURE, ChannelRole.FLOW)
                for ch in result.channels_by_role(role)
            ]
            self._savgol.filter_channels(result, channels, progress=progress)
        return result

    def align(self, data: HemoData, spec: AlignmentSpec) -> HemoData:
        """Align two channels of a recording with the configured discordance factor."""
        return spec.apply(data, discordance_factor=self.settings.align.discordance_factor)

    def align_pressure_flow(self, data: HemoData, pressure_index: int, flow_index: int) -> HemoData:
        """Align the first pressure and flow channels on one reference sample each."""
        align = self.settings.align
        return data.copy_with_y_alignment(
            data.channel_by_role(ChannelRole.PRESSURE).name,
            data.channel_by_role(ChannelRole.FLOW).name,
            pressure_index,
            flow_index,
            allow_wrap=align.allow_wrap,
            ignore_wrap_discordance=align.ignore_wrap_discordance,
            discordance_factor=align.discordance_factor,
        )

    def ensemble(self, selection: BeatSelection, subtype: str | None = None) -> Beat:
        """Ensemble the pressure and flow of a selection."""
        ensemble = self.settings.ensemble
        return ensemble_flow_pressure(
            selection.beats(subtype), ensemble.mode, selection.name, ensemble.interval_tolerance
        )

    def analyze(self, selection: BeatSelection, subtype: str | None = None) -> WIAData:
        """Ensemble a selection and run wave intensity analysis on the result."""
        wave = self.settings.wave
        return WIAData(
            self.ensemble(selection, subtype),
            density=wave.blood_density,
            threshold=wave.threshold,
            min_samples=wave.min_samples,
            detect=wave.detect,
        )


def analyze_selections(
    selections: Iterable[BeatSelection],
    settings: Settings | str | Path | None = None,
) -> pd.DataFrame:
    """Analyse several beat selections and tabulate their metrics.

    This is the main high-level API. It handles configuration loading and
    runs :meth:`WIAPipeline.analyze` on every selection.

    Args:
        selections: Beat selections, e.g. one per treatment.
        settings: Configuration. Can be:
            - Settings object: Use directly
            - str or Path: Load from JSON/TOML config file
            - None: Use default settings

    Returns:
        DataFrame with one row per selection, indexed by selection name,
        holding the columns of :meth:`WIAData.summary`.

    Raises:
        IncompatibleBeatSetError: If a selection cannot be ensembled
        InvalidWaveInputError: If an ensembled beat cannot be analysed
        TypeError: If settings has an unsupported type

    Examples:
        table = pywia.analyze_selections([baseline, adenosine])
        table = pywia.analyze_selections([baseline], settings="wia.toml")
    """
    if settings is None:
        settings_obj = Settings()
    elif isinstance(settings, (str, Path)):
        settings_obj = ConfigLoader.from_file(settings)
    elif isinstance(settings, Settings):
        settings_obj = settings
    else:
        raise TypeError(
            f"settings must be a Settings object, str, Path, or None, got {type(settings).__name__}"
        )

    selections = list(selections)
    pipeline = WIAPipeline(settings_obj)
    start = log_start("wave intensity analysis", len(selections))
    rows = [pipeline.analyze(selection).summary() for selection in selections]
    table = pd.DataFrame(rows)
    if not table.empty:
        table.index = pd.Index([s.name for s in selections], name="Selection")
    log_end("wave intensity analysis", start, len(table))
    return table
