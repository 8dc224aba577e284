"""Configuration system for pywia."""

from .loaders import ConfigLoader
from .models import AlignArgs, EnsembleArgs, FilterArgs, ResampleArgs, Settings, WaveArgs

__all__ = [
    "AlignArgs",
    "ConfigLoader",
    "EnsembleArgs",
    "FilterArgs",
    "ResampleArgs",
    "Settings",
    "WaveArgs",
]
