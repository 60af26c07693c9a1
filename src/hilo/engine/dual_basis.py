"""Dual-basis aggregation.

Runs the rolling window evaluator on intraday highs/lows and on closes over
the same bar history and pairs the two series session by session.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from hilo.exceptions import MisalignedBasesError
from hilo.engine.rolling import EXTREME_TOLERANCE, evaluate_extremes, normalize_bars
from hilo.types import Bar, Basis, DualBasisRow, ExtremeMetrics, Symbol


def align_bases(
    symbol: str,
    high_series: Sequence[ExtremeMetrics],
    close_series: Sequence[ExtremeMetrics],
) -> list[DualBasisRow]:
    """Zip HIGH-basis and CLOSE-basis metrics by position.

    :param symbol: Symbol the series belong to.
    :param high_series: INTRADAY-basis metrics.
    :param close_series: CLOSE-basis metrics.
    :returns: One row per session.
    :raises MisalignedBasesError: If lengths or dates differ.
    """
    if len(high_series) != len(close_series):
        raise MisalignedBasesError(
            symbol,
            f"basis lengths differ ({len(high_series)} high vs "
            f"{len(close_series)} close)",
        )

    rows: list[DualBasisRow] = []
    for index, (high, close) in enumerate(zip(high_series, close_series)):
        if high.date != close.date:
            raise MisalignedBasesError(
                symbol,
                f"dates differ at index {index} "
                f"({high.date.isoformat()} vs {close.date.isoformat()})",
            )
        rows.append(
            DualBasisRow(
                symbol=Symbol(symbol),
                date=high.date,
                high_basis=high,
                close_basis=close,
            )
        )
    return rows


def compute_dual_basis(
    symbol: str,
    bars: Iterable[Bar],
    lookback: int,
    tolerance: float = EXTREME_TOLERANCE,
) -> list[DualBasisRow]:
    """Evaluate both bases over identical bars and align them.

    :param symbol: Symbol the bars belong to.
    :param bars: Bars in either chronological order.
    :param lookback: Window length in bars.
    :param tolerance: Relative tolerance for "at the extreme".
    :returns: Rows in ascending date order.
    """
    ordered = normalize_bars(bars)
    high_series = evaluate_extremes(ordered, lookback, Basis.INTRADAY, tolerance)
    close_series = evaluate_extremes(ordered, lookback, Basis.CLOSE, tolerance)
    return align_bases(symbol, high_series, close_series)
