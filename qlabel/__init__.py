"""Public API surface for the qlabel package."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "ExecutionBasis",
    "LowerBarrier",
    "UpperBarrier",
    "TimeBarrier",
    "ConditionBarrier",
    "PriceSeries",
    "LabelResults",
    "resolve",
    "resolve_frame",
    "sample_weights",
    "foundation",
    "runtime",
]

_SUBMODULES = {"foundation", "runtime"}


def __getattr__(name: str) -> Any:
    if name in _SUBMODULES:
        module = importlib.import_module(f"qlabel.{name}")
        globals()[name] = module
        return module
    if name in __all__:
        labeling = importlib.import_module("qlabel.runtime.labeling")
        value = getattr(labeling, name)
        globals()[name] = value
        return value
    raise AttributeError(name)


def __dir__():
    return sorted(set(__all__))
