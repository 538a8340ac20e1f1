"""Foundation layer for shared infrastructure modules."""

from . import common, config
from .config import LabelingConfig, get_labeling_config, load_config

__all__ = [
    "common",
    "config",
    "LabelingConfig",
    "get_labeling_config",
    "load_config",
]
