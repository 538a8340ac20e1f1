"""Per-event forward scan that resolves barriers into labels.

For every event the entry bar and price are fixed by the entry execution
basis, then bars after entry are scanned in order. On each bar every barrier
is evaluated in the caller's order: a gap through the level at the open is
checked before an intrabar touch, and the first barrier that fires ends the
scan. Once all events are resolved, sample weights are computed over the
resolved population.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import numpy as np

from qlabel.foundation.config import LabelingConfig, get_labeling_config, parse_bool
from qlabel.runtime.labeling import metrics as labeling_metrics
from qlabel.runtime.labeling.barriers import BarrierProtocol
from qlabel.runtime.labeling.context import EvaluationContext, freeze_extra_context
from qlabel.runtime.labeling.execution import ExecutionBasis
from qlabel.runtime.labeling.results import UNRESOLVED_INDEX, LabelResults
from qlabel.runtime.labeling.schema import BAR_FIELDS, UNRESOLVED_LABEL, PriceSeries
from qlabel.runtime.labeling.weights import sample_weights

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class _LabelBuffers:
    """Preallocated outputs; slot ``i`` is written only by event ``i``."""

    event_index: np.ndarray
    entry_index: np.ndarray
    exit_index: np.ndarray
    entry_timestamp: np.ndarray
    exit_timestamp: np.ndarray
    label: np.ndarray
    ret: np.ndarray
    log_ret: np.ndarray
    weight: np.ndarray

    @classmethod
    def allocate(cls, event_index: np.ndarray) -> "_LabelBuffers":
        n_events = len(event_index)
        return cls(
            event_index=event_index.copy(),
            entry_index=np.full(n_events, UNRESOLVED_INDEX, dtype=np.int64),
            exit_index=np.full(n_events, UNRESOLVED_INDEX, dtype=np.int64),
            entry_timestamp=np.full(n_events, np.datetime64("NaT"), dtype="datetime64[ns]"),
            exit_timestamp=np.full(n_events, np.datetime64("NaT"), dtype="datetime64[ns]"),
            label=np.full(n_events, UNRESOLVED_LABEL, dtype=np.int8),
            ret=np.full(n_events, np.nan, dtype=np.float64),
            log_ret=np.full(n_events, np.nan, dtype=np.float64),
            weight=np.zeros(n_events, dtype=np.float64),
        )


@dataclass(frozen=True)
class _ResolutionPlan:
    bars: PriceSeries
    barriers: tuple[BarrierProtocol, ...]
    entry_basis: ExecutionBasis
    extra: Mapping[str, Any]

    def resolve_event(self, i: int, out: _LabelBuffers) -> None:
        bars = self.bars
        n_bars = len(bars)
        event_idx = int(out.event_index[i])
        entry_index = event_idx + self.entry_basis.index_offset
        if entry_index < 0 or entry_index >= n_bars:
            return

        entry_price = self.entry_basis.price(0.0, entry_index, bars)
        entry_ctx = EvaluationContext.at_entry(
            bars,
            self.extra,
            event_index=event_idx,
            entry_index=entry_index,
            entry_price=entry_price,
        )
        out.entry_index[i] = entry_index
        out.entry_timestamp[i] = bars.timestamp[entry_index]

        for j in range(entry_index + 1, n_bars):
            ctx = entry_ctx.with_bar(j)
            open_price = float(bars.open[j])
            for barrier in self.barriers:
                level = barrier.level(ctx)
                if barrier.gap_triggered(level, open_price):
                    fill_level: Any = open_price
                elif barrier.intrabar_triggered(
                    level, float(bars.low[j]), float(bars.high[j]), bars.timestamp[j]
                ):
                    fill_level = level
                else:
                    continue

                exit_index = j + barrier.exit_basis.index_offset
                if exit_index >= n_bars:
                    # exit fill lies beyond the data; later barriers are not consulted
                    return
                exit_price = barrier.exit_basis.price(fill_level, exit_index, bars)
                with np.errstate(divide="ignore", invalid="ignore"):
                    ret = np.float64(exit_price) / np.float64(entry_price) - 1.0
                    log_ret = np.log1p(ret)
                out.exit_index[i] = exit_index
                out.exit_timestamp[i] = bars.timestamp[exit_index]
                out.label[i] = barrier.label
                out.ret[i] = ret
                out.log_ret[i] = log_ret
                return

    def resolve_range(self, start: int, stop: int, out: _LabelBuffers) -> None:
        for i in range(start, stop):
            self.resolve_event(i, out)


def warn_barrier_ordering(barriers: Sequence[BarrierProtocol]) -> int:
    """Log a warning for each adjacent pair listed against temporal priority.

    A barrier whose exit fills later than the next barrier's still wins when
    both fire on the same bar, which is rarely intended. Returns the number of
    warnings emitted; resolution is not affected.
    """
    warnings = 0
    for current, following in zip(barriers, barriers[1:]):
        if current.exit_basis.temporal_priority > following.exit_basis.temporal_priority:
            logger.warning(
                "%s with %s exit basis is listed before %s with %s exit basis; "
                "the first-listed barrier takes priority when both trigger on the same bar",
                type(current).__name__,
                current.exit_basis.value,
                type(following).__name__,
                following.exit_basis.value,
            )
            labeling_metrics.observe_ordering_warning()
            warnings += 1
    return warnings


def _coerce_event_indices(event_indices: Sequence[int] | np.ndarray) -> np.ndarray:
    array = np.asarray(event_indices)
    if array.size == 0:
        return np.zeros(0, dtype=np.int64)
    if array.ndim != 1:
        raise ValueError("event_indices must be one-dimensional")
    if not np.issubdtype(array.dtype, np.integer):
        raise TypeError(f"event_indices must be integers, got dtype {array.dtype}")
    return array.astype(np.int64)


def _coerce_barriers(barriers: Sequence[BarrierProtocol]) -> tuple[BarrierProtocol, ...]:
    normalized = tuple(barriers)
    for barrier in normalized:
        if not isinstance(barrier, BarrierProtocol):
            raise TypeError(f"{barrier!r} does not implement the barrier protocol")
    return normalized


def _resolve_workers(max_workers: int | None, n_events: int) -> int:
    if max_workers is not None and max_workers < 1:
        raise ValueError("max_workers must be >= 1 when provided")
    workers = max_workers if max_workers is not None else (os.cpu_count() or 1)
    return max(1, min(workers, n_events))


def _run_parallel(plan: _ResolutionPlan, out: _LabelBuffers, workers: int) -> None:
    n_events = len(out.event_index)
    bounds = np.linspace(0, n_events, workers + 1, dtype=np.int64)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="qlabel-resolve") as pool:
        futures = [
            pool.submit(plan.resolve_range, int(start), int(stop), out)
            for start, stop in zip(bounds[:-1], bounds[1:])
            if stop > start
        ]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in done:
            future.result()


def resolve(
    event_indices: Sequence[int] | np.ndarray,
    bars: PriceSeries,
    barriers: Sequence[BarrierProtocol],
    *,
    entry_basis: ExecutionBasis | str | None = None,
    extra_context: Mapping[str, Any] | None = None,
    drop_unresolved: bool | None = None,
    max_workers: int | None = None,
    config: LabelingConfig | None = None,
) -> LabelResults:
    """Resolve every event against ``barriers`` and weight the resolved rows.

    Arguments left as ``None`` fall back to ``config`` (or the active
    :func:`~qlabel.foundation.config.get_labeling_config`). Exceptions raised
    by barrier level functions propagate and abort the whole call.

    A price barrier that gaps through its level fills at that bar's open only
    for ``IMMEDIATE`` and ``CURRENT_OPEN`` exits. Other bases price a gap exit
    from their own field, and ``NEXT_*`` bases record it on the following bar.
    """
    started = time.perf_counter()
    cfg = config if config is not None else get_labeling_config()
    basis = ExecutionBasis.parse(entry_basis if entry_basis is not None else cfg.entry_basis)
    drop = cfg.drop_unresolved if drop_unresolved is None else parse_bool(
        "drop_unresolved", drop_unresolved
    )
    requested_workers = max_workers if max_workers is not None else cfg.max_workers

    events = _coerce_event_indices(event_indices)
    plan = _ResolutionPlan(
        bars=bars,
        barriers=_coerce_barriers(barriers),
        entry_basis=basis,
        extra=freeze_extra_context(extra_context, len(bars)),
    )
    if cfg.warn_on_ordering:
        warn_barrier_ordering(plan.barriers)

    out = _LabelBuffers.allocate(events)
    workers = _resolve_workers(requested_workers, len(events))
    if workers == 1:
        plan.resolve_range(0, len(events), out)
    else:
        _run_parallel(plan, out, workers)

    resolved = out.label != UNRESOLVED_LABEL
    out.weight[resolved] = sample_weights(
        len(bars), out.entry_index[resolved], out.exit_index[resolved], out.ret[resolved]
    )

    n_resolved = int(resolved.sum())
    labeling_metrics.observe_outcomes(n_resolved, len(events) - n_resolved)
    labeling_metrics.observe_duration(time.perf_counter() - started)
    logger.debug(
        "Resolved %d/%d events over %d bars (barriers=%d, entry_basis=%s, workers=%d)",
        n_resolved,
        len(events),
        len(bars),
        len(plan.barriers),
        basis.value,
        workers,
    )

    return LabelResults.build(
        event_index=out.event_index,
        entry_index=out.entry_index,
        exit_index=out.exit_index,
        entry_timestamp=out.entry_timestamp,
        exit_timestamp=out.exit_timestamp,
        label=out.label,
        ret=out.ret,
        log_ret=out.log_ret,
        weight=out.weight,
        drop_unresolved=drop,
    )


def resolve_frame(
    frame: "pd.DataFrame",
    event_indices: Sequence[int] | np.ndarray,
    barriers: Sequence[BarrierProtocol],
    *,
    extra_context: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> LabelResults:
    """Resolve events over an OHLCV DataFrame.

    Numeric columns other than the price fields (features, ``side``...) become
    extra context; entries in ``extra_context`` take precedence.
    """
    import pandas as pd

    bars = PriceSeries.from_frame(frame)
    extras: dict[str, Any] = {
        str(name): frame[name].to_numpy()
        for name in frame.columns
        if name not in BAR_FIELDS and pd.api.types.is_numeric_dtype(frame[name])
    }
    if extra_context:
        extras.update(extra_context)
    return resolve(event_indices, bars, barriers, extra_context=extras, **kwargs)


__all__ = ["resolve", "resolve_frame", "warn_barrier_ordering"]
