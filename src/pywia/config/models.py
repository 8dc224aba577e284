"""Pydantic models for configuration."""

import pydantic
from pydantic import BaseModel, Field

from ..beats import EnsembleType
from ..constants import BLOOD_DENSITY, ENSEMBLE_INTERVAL_TOLERANCE, WRAP_DISCORDANCE_FACTOR
from ..filtering import validate_savgol_settings


class FilterArgs(BaseModel):
    """Settings for Savitzky-Golay smoothing of pressure and flow.

    Attributes:
        enabled: Whether to smooth pressure and flow before ensembling.
        window: Odd window length in samples.
        poly_order: Order of the fitted polynomial.
    """

    enabled: bool = False
    window: int = 11
    poly_order: int = 3

    @pydantic.model_validator(mode="after")
    def check_window(self) -> "FilterArgs":
        """Reject window/order combinations the filter cannot be built with.

        Raises:
            ValueError: If the settings are invalid.
        """
        validate_savgol_settings(self.window, self.poly_order)
        return self


class ResampleArgs(BaseModel):
    """Settings for resampling onto a uniform grid.

    Attributes:
        enabled: Whether to resample.
        interval: Target sample interval in seconds. If None, no resampling is
            performed.
        oversample_level: When > 0, the interval is capped at the smallest
            input interval divided by this factor.
    """

    enabled: bool = False
    interval: float | None = Field(default=None, gt=0)
    oversample_level: int = Field(default=0, ge=0)


class AlignArgs(BaseModel):
    """Settings for aligning channels on reference points.

    Attributes:
        allow_wrap: Rotate the adjusted channel instead of cropping.
        ignore_wrap_discordance: Skip the seam check when wrapping.
        discordance_factor: Allowed seam jump as a multiple of the mean step.
    """

    allow_wrap: bool = False
    ignore_wrap_discordance: bool = False
    discordance_factor: float = Field(default=WRAP_DISCORDANCE_FACTOR, gt=0)


class EnsembleArgs(BaseModel):
    """Settings for beat ensembling.

    Attributes:
        mode: "trim" truncates beats to the shortest, "scale" stretches them
            to the longest.
        interval_tolerance: Allowed spread of the beats' sample intervals (s).
    """

    mode: EnsembleType = EnsembleType.TRIM
    interval_tolerance: float = Field(default=ENSEMBLE_INTERVAL_TOLERANCE, gt=0)


class WaveArgs(BaseModel):
    """Settings for wave intensity analysis.

    Attributes:
        blood_density: Blood density in kg/m^3.
        detect: Whether to detect discrete waves automatically.
        threshold: Minimum peak of a detected wave relative to the largest
            intensity of its direction.
        min_samples: Minimum number of samples of a detected wave.
    """

    blood_density: float = Field(default=BLOOD_DENSITY, gt=0)
    detect: bool = True
    threshold: float = Field(default=0.05, gt=0, lt=1)
    min_samples: int = Field(default=3, ge=2)


class Settings(BaseModel):
    """Complete settings for wave intensity analysis.

    Args:
        filter: Savitzky-Golay smoothing configuration
        resample: Resampling configuration
        align: Alignment configuration
        ensemble: Ensembling configuration
        wave: Wave intensity configuration

    Examples:
        # Default settings (trim ensembling, no smoothing, no resampling)
        settings = Settings()

        # Smooth and resample to 1 kHz before ensembling
        settings = Settings()
        settings.filter.enabled = True
        settings.resample = ResampleArgs(enabled=True, interval=0.001)

        # Scale ensembling from a dict
        settings = Settings(ensemble={"mode": "scale"})
    """

    filter: FilterArgs = Field(default_factory=FilterArgs)
    resample: ResampleArgs = Field(default_factory=ResampleArgs)
    align: AlignArgs = Field(default_factory=AlignArgs)
    ensemble: EnsembleArgs = Field(default_factory=EnsembleArgs)
    wave: WaveArgs = Field(default_factory=WaveArgs)

    @pydantic.model_validator(mode="after")
    def check_resample(self) -> "Settings":
        """Require an interval when resampling is enabled.

        Raises:
            ValueError: If resampling is enabled without an interval
        """
        if self.resample.enabled and self.resample.interval is None:
            raise ValueError("resample.interval must be set when resampling is enabled")
        return self
