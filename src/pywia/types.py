"""Type definitions for channels, units and signal arrays."""

from enum import Enum
from typing import Annotated, TypeAlias

import numpy as np
import numpy.typing as npt

# One channel of samples, shape (n_samples,)
Signal: TypeAlias = Annotated[npt.NDArray[np.float64], "Shape: (n_samples,)"]

# Sample indices into a signal, e.g. R peaks
IndexArray: TypeAlias = Annotated[npt.NDArray[np.int64], "Shape: (n_indices,)"]


class ChannelRole(str, Enum):
    """What a channel represents. A channel may carry several roles."""

    TIME = "time"
    PRESSURE = "pressure"
    FLOW = "flow"
    ECG = "ecg"
    R_WAVE = "r_wave"
    ALIGN = "align"
    OTHER = "other"


class Unit(str, Enum):
    """Physical unit of a channel."""

    SECONDS = "s"
    MILLISECONDS = "ms"
    MMHG = "mmHg"
    PASCAL = "Pa"
    M_PER_S = "m/s"
    CM_PER_S = "cm/s"

    @property
    def role(self) -> ChannelRole:
        """The channel role this unit measures."""
        if self in (Unit.SECONDS, Unit.MILLISECONDS):
            return ChannelRole.TIME
        if self in (Unit.MMHG, Unit.PASCAL):
            return ChannelRole.PRESSURE
        return ChannelRole.FLOW
