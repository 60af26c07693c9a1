"""Data-quality heuristics for a scanned universe.

Both checks only warn. A stale symbol points at an upstream data gap; a
suspicious symbol has a days-since-high series that never moves, which is
typical of a flat-lined feed but can also be a genuine trend.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Mapping, Sequence

from hilo.types import Basis, DualBasisRow, SanityReport, Symbol

logger = logging.getLogger(__name__)

DEFAULT_STALE_TOLERANCE_DAYS = 3


def latest_dates(rows_by_symbol: Mapping[str, Sequence[DualBasisRow]]) -> dict[str, dt.date]:
    """Most recent session of every symbol that has data."""
    return {
        symbol: max(row.date for row in rows)
        for symbol, rows in rows_by_symbol.items()
        if rows
    }


def find_stale_symbols(
    rows_by_symbol: Mapping[str, Sequence[DualBasisRow]],
    tolerance_days: int = DEFAULT_STALE_TOLERANCE_DAYS,
) -> list[Symbol]:
    """Symbols whose latest bar trails the universe by more than the tolerance.

    Symbols with no rows at all are failures, not stale data, and are ignored.
    """
    last = latest_dates(rows_by_symbol)
    if not last:
        return []
    universe_latest = max(last.values())
    return [
        Symbol(symbol)
        for symbol, latest in last.items()
        if (universe_latest - latest).days > tolerance_days
    ]


def find_suspicious_symbols(
    rows_by_symbol: Mapping[str, Sequence[DualBasisRow]],
    basis: Basis = Basis.CLOSE,
    visible_rows: int | None = None,
) -> list[Symbol]:
    """Symbols whose days since high is identical across the visible window.

    Sentinel rows of a symbol without a full lookback are not data and are
    skipped before the comparison.

    :param rows_by_symbol: Dual-basis rows per symbol.
    :param basis: Active basis to inspect.
    :param visible_rows: Trailing rows considered (None = the whole series).
    :returns: Symbols flagged, in input order.
    """
    flagged: list[Symbol] = []
    for symbol, rows in rows_by_symbol.items():
        window = rows[-visible_rows:] if visible_rows else rows
        metrics = [row.metrics(basis) for row in window]
        computed = [m for m in metrics if not m.is_degenerate]
        if len(computed) < 2:
            continue
        values = {m.days_since_high for m in computed}
        if len(values) == 1:
            flagged.append(Symbol(symbol))
    return flagged


def check_sanity(
    rows_by_symbol: Mapping[str, Sequence[DualBasisRow]],
    tolerance_days: int = DEFAULT_STALE_TOLERANCE_DAYS,
    basis: Basis = Basis.CLOSE,
    visible_rows: int | None = None,
) -> SanityReport:
    """Run both checks and log a warning for every flagged symbol."""
    last = latest_dates(rows_by_symbol)
    report = SanityReport(
        latest_date=max(last.values()) if last else None,
        stale=find_stale_symbols(rows_by_symbol, tolerance_days),
        suspicious=find_suspicious_symbols(rows_by_symbol, basis, visible_rows),
    )

    for symbol in report.stale:
        logger.warning(
            "[SANITY] %s stale: last bar %s, universe latest %s",
            symbol, last[symbol], report.latest_date,
        )
    for symbol in report.suspicious:
        logger.warning(
            "[SANITY] %s suspicious: constant %s days since high", symbol, basis.value
        )
    return report
