"""Rolling window evaluator.

Turns one symbol's daily bars into one :class:`ExtremeMetrics` record per bar,
describing how far the bar sits from the highest high and lowest low of the
trailing ``lookback`` bars under a given price basis.

The window extremes are maintained with monotonic deques, so a full pass is
O(N) regardless of the lookback. Ties resolve to the most recent bar that
holds the extreme, which is what the backward scan of a naive implementation
would find first.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Sequence

from hilo.exceptions import DataValidationError
from hilo.types import Bar, Basis, ExtremeMetrics

# Relative tolerance for declaring that a bar sits on its rolling extreme.
EXTREME_TOLERANCE = 1e-4


def normalize_bars(bars: Iterable[Bar]) -> list[Bar]:
    """Return bars sorted ascending by date.

    :param bars: Bars in any order.
    :returns: New list of bars, oldest first.
    :raises DataValidationError: If two bars share a date.
    """
    ordered = sorted(bars, key=lambda bar: bar.date)
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.date == cur.date:
            raise DataValidationError(
                f"Duplicate bar for {cur.symbol} on {cur.date.isoformat()}"
            )
    return ordered


def basis_fields(bars: Sequence[Bar], basis: Basis) -> tuple[list[float], list[float]]:
    """Return the (high-field, low-field) series selected by the basis."""
    if basis == Basis.INTRADAY:
        return [bar.high for bar in bars], [bar.low for bar in bars]
    closes = [bar.close for bar in bars]
    return closes, closes


def _pct(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def _sentinel(bars: Sequence[Bar], lookback: int) -> list[ExtremeMetrics]:
    return [
        ExtremeMetrics(
            date=bar.date,
            days_since_high=lookback,
            days_since_low=lookback,
            pct_from_high=0.0,
            pct_from_low=0.0,
            rolling_high=0.0,
            rolling_low=0.0,
            current_value=0.0,
        )
        for bar in bars
    ]


def evaluate_extremes(
    bars: Iterable[Bar],
    lookback: int,
    basis: Basis | str = Basis.CLOSE,
    tolerance: float = EXTREME_TOLERANCE,
) -> list[ExtremeMetrics]:
    """Compute rolling-extreme metrics for every bar.

    When fewer bars than ``lookback`` are available, every row is the
    degenerate sentinel (days = lookback, everything else 0) because a partial
    window is not a trustworthy lookback extreme. Callers detect it through
    :attr:`ExtremeMetrics.is_degenerate`.

    :param bars: Bars of a single symbol, in either chronological order.
    :param lookback: Window length in bars (>= 1).
    :param basis: Price basis selecting the high/low fields.
    :param tolerance: Relative tolerance for "at the extreme".
    :returns: One metrics record per bar, aligned with the ascending bars.
    :raises DataValidationError: If lookback < 1 or dates repeat.
    """
    if lookback < 1:
        raise DataValidationError(f"lookback must be >= 1, got {lookback}")
    basis = Basis(basis)
    ordered = normalize_bars(bars)
    if len(ordered) < lookback:
        return _sentinel(ordered, lookback)

    highs, lows = basis_fields(ordered, basis)
    # Front of max_idx holds the index of the most recent window maximum.
    max_idx: deque[int] = deque()
    min_idx: deque[int] = deque()
    metrics: list[ExtremeMetrics] = []

    for i, bar in enumerate(ordered):
        start = i - lookback + 1
        while max_idx and highs[max_idx[-1]] <= highs[i]:
            max_idx.pop()
        max_idx.append(i)
        while min_idx and lows[min_idx[-1]] >= lows[i]:
            min_idx.pop()
        min_idx.append(i)
        if max_idx[0] < start:
            max_idx.popleft()
        if min_idx[0] < start:
            min_idx.popleft()

        rolling_high = highs[max_idx[0]]
        rolling_low = lows[min_idx[0]]
        current_value = highs[i]
        current_low_value = lows[i]

        if current_value >= rolling_high * (1 - tolerance):
            days_since_high = 0
        else:
            days_since_high = i - max_idx[0]
        if current_low_value <= rolling_low * (1 + tolerance):
            days_since_low = 0
        else:
            days_since_low = i - min_idx[0]

        metrics.append(
            ExtremeMetrics(
                date=bar.date,
                days_since_high=min(days_since_high, lookback),
                days_since_low=min(days_since_low, lookback),
                pct_from_high=_pct(rolling_high - current_value, rolling_high),
                pct_from_low=_pct(current_low_value - rolling_low, rolling_low),
                rolling_high=rolling_high,
                rolling_low=rolling_low,
                current_value=current_value,
            )
        )

    return metrics


def days_since_high_series(
    bars: Iterable[Bar],
    lookback: int,
    basis: Basis | str = Basis.CLOSE,
) -> list[int]:
    """Shorthand for the days-since-high column used by heatmaps."""
    return [m.days_since_high for m in evaluate_extremes(bars, lookback, basis)]
