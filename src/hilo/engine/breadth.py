"""New-high / new-low breadth series across a universe.

For every session after the first ``lookback`` sessions, each symbol's close
is compared against its closes over the preceding ``lookback`` sessions. A
close at or below the prior minimum is a new low, at or above the prior
maximum a new high. Symbols with less than half of the window present are
not counted on that session.
"""

from __future__ import annotations

import datetime as dt
from typing import Mapping, Sequence

from pydantic import Field

from hilo.exceptions import DataValidationError
from hilo.types import Bar, FrozenModel, Symbol

MIN_WINDOW_COVERAGE = 0.5


class BreadthEntry(FrozenModel):
    """Breadth on one session.

    :param date: Session.
    :param pct_new_lows: Share of valid symbols at a new low, in percent.
    :param pct_new_highs: Share of valid symbols at a new high, in percent.
    :param count_new_lows: Symbols at a new low.
    :param count_new_highs: Symbols at a new high.
    :param count_valid: Symbols with enough history that session.
    :param new_low_symbols: Symbols at a new low.
    :param new_high_symbols: Symbols at a new high.
    """

    date: dt.date
    pct_new_lows: float
    pct_new_highs: float
    count_new_lows: int
    count_new_highs: int
    count_valid: int
    new_low_symbols: list[Symbol] = Field(default_factory=list)
    new_high_symbols: list[Symbol] = Field(default_factory=list)


class BreadthSeries(FrozenModel):
    """Breadth entries for every session with a full lookback behind it.

    :param entries: Entries in ascending date order.
    :param lookback: Window length in sessions.
    :param total_symbols: Symbols in the universe.
    """

    entries: list[BreadthEntry] = Field(default_factory=list)
    lookback: int
    total_symbols: int


class PeakResult(FrozenModel):
    """Session with the highest new-low or new-high percentage."""

    date: dt.date
    value: float
    count: int
    count_valid: int
    symbols: list[Symbol] = Field(default_factory=list)


class WindowResult(FrozenModel):
    """Stretch of sessions around the peak of a breadth metric.

    :param window_start: First session of the window.
    :param window_end: Last session of the window.
    :param peak_date: Session of the peak.
    :param peak_value: Metric value at the peak.
    :param avg_value: Mean metric value over the window.
    :param window_days: Requested window length.
    :param trading_days: Sessions actually in the window.
    """

    window_start: dt.date
    window_end: dt.date
    peak_date: dt.date
    peak_value: float
    avg_value: float
    window_days: int
    trading_days: int


class BreadthExtremes(FrozenModel):
    """Peak, surrounding window and the series they were found in."""

    peak: PeakResult
    window: WindowResult
    series: list[BreadthEntry] = Field(default_factory=list)


class WashedOutAnalysis(FrozenModel):
    """Whether new lows are widespread enough to call the market washed out."""

    is_washed_out: bool
    threshold: float
    current_value: float
    days_above_threshold: int
    peak_value: float
    peak_date: dt.date | None = None


def compute_breadth_series(
    bars_by_symbol: Mapping[str, Sequence[Bar]],
    lookback: int = 100,
) -> BreadthSeries:
    """Compute the rolling new-high / new-low breadth series.

    :param bars_by_symbol: Bars per symbol, any order; sessions are aligned by date.
    :param lookback: Prior sessions each close is compared against.
    :returns: Breadth series.
    :raises DataValidationError: If lookback < 1.
    """
    if lookback < 1:
        raise DataValidationError(f"lookback must be >= 1, got {lookback}")

    closes: dict[str, dict[dt.date, float]] = {
        symbol: {bar.date: bar.close for bar in bars}
        for symbol, bars in bars_by_symbol.items()
    }
    dates = sorted({day for by_date in closes.values() for day in by_date})
    entries: list[BreadthEntry] = []

    for i in range(lookback, len(dates)):
        day = dates[i]
        window_dates = dates[i - lookback:i]
        new_lows: list[Symbol] = []
        new_highs: list[Symbol] = []
        valid = 0

        for symbol, by_date in closes.items():
            current = by_date.get(day)
            if current is None:
                continue
            window = [by_date[d] for d in window_dates if d in by_date]
            if len(window) < lookback * MIN_WINDOW_COVERAGE:
                continue

            valid += 1
            if current <= min(window):
                new_lows.append(Symbol(symbol))
            if current >= max(window):
                new_highs.append(Symbol(symbol))

        entries.append(
            BreadthEntry(
                date=day,
                pct_new_lows=len(new_lows) / valid * 100 if valid else 0.0,
                pct_new_highs=len(new_highs) / valid * 100 if valid else 0.0,
                count_new_lows=len(new_lows),
                count_new_highs=len(new_highs),
                count_valid=valid,
                new_low_symbols=new_lows,
                new_high_symbols=new_highs,
            )
        )

    return BreadthSeries(
        entries=entries, lookback=lookback, total_symbols=len(bars_by_symbol)
    )


def _peak(entry: BreadthEntry, metric: str) -> PeakResult:
    if metric == "new_lows":
        return PeakResult(
            date=entry.date,
            value=entry.pct_new_lows,
            count=entry.count_new_lows,
            count_valid=entry.count_valid,
            symbols=entry.new_low_symbols,
        )
    return PeakResult(
        date=entry.date,
        value=entry.pct_new_highs,
        count=entry.count_new_highs,
        count_valid=entry.count_valid,
        symbols=entry.new_high_symbols,
    )


def _check_metric(metric: str) -> None:
    if metric not in ("new_lows", "new_highs"):
        raise DataValidationError(f"metric must be 'new_lows' or 'new_highs', got '{metric}'")


def find_peak_day(series: BreadthSeries, metric: str = "new_lows") -> PeakResult | None:
    """Earliest session with the highest value of the metric."""
    _check_metric(metric)
    if not series.entries:
        return None
    peaks = [_peak(entry, metric) for entry in series.entries]
    return max(peaks, key=lambda p: p.value)


def find_top_peaks(
    series: BreadthSeries,
    metric: str = "new_lows",
    top_n: int = 5,
) -> list[PeakResult]:
    """The ``top_n`` sessions by metric value, highest first."""
    _check_metric(metric)
    peaks = [_peak(entry, metric) for entry in series.entries]
    peaks.sort(key=lambda p: p.value, reverse=True)
    return peaks[:top_n]


def analyze_washed_out(series: BreadthSeries, threshold: float = 20.0) -> WashedOutAnalysis:
    """Check whether the latest new-low percentage reaches ``threshold``."""
    if not series.entries:
        return WashedOutAnalysis(
            is_washed_out=False,
            threshold=threshold,
            current_value=0.0,
            days_above_threshold=0,
            peak_value=0.0,
        )

    peak = find_peak_day(series, "new_lows")
    current = series.entries[-1].pct_new_lows
    return WashedOutAnalysis(
        is_washed_out=current >= threshold,
        threshold=threshold,
        current_value=current,
        days_above_threshold=sum(1 for e in series.entries if e.pct_new_lows >= threshold),
        peak_value=peak.value if peak else 0.0,
        peak_date=peak.date if peak else None,
    )


def _value(entry: BreadthEntry, metric: str) -> float:
    return entry.pct_new_lows if metric == "new_lows" else entry.pct_new_highs


def find_window_around_peak(
    series: BreadthSeries,
    metric: str = "new_lows",
    window_days: int = 100,
) -> WindowResult | None:
    """Window of ``window_days`` sessions centered on the metric's peak.

    A window that would run past either end of the series is shifted to
    start at the first session (or end at the last) so it keeps its length
    when the series is long enough.

    :param series: Breadth series.
    :param metric: "new_lows" or "new_highs".
    :param window_days: Sessions in the window.
    :returns: Window statistics, or None for an empty series.
    :raises DataValidationError: If the metric is unknown or window_days < 1.
    """
    if window_days < 1:
        raise DataValidationError(f"window_days must be >= 1, got {window_days}")
    peak = find_peak_day(series, metric)
    if peak is None:
        return None

    entries = series.entries
    last = len(entries) - 1
    peak_index = next(i for i, e in enumerate(entries) if e.date == peak.date)

    half = window_days // 2
    start = max(0, peak_index - half)
    end = min(last, peak_index + half)
    if start == 0:
        end = min(last, window_days - 1)
    if end == last:
        start = max(0, len(entries) - window_days)

    window = entries[start:end + 1]
    return WindowResult(
        window_start=entries[start].date,
        window_end=entries[end].date,
        peak_date=peak.date,
        peak_value=peak.value,
        avg_value=sum(_value(e, metric) for e in window) / len(window),
        window_days=window_days,
        trading_days=len(window),
    )


def analyze_breadth_extremes(
    series: BreadthSeries,
    metric: str = "new_lows",
    window_days: int = 100,
) -> BreadthExtremes | None:
    """Peak and surrounding window of a breadth metric, None without entries."""
    peak = find_peak_day(series, metric)
    window = find_window_around_peak(series, metric, window_days)
    if peak is None or window is None:
        return None
    return BreadthExtremes(peak=peak, window=window, series=series.entries)


def get_breadth_on_date(series: BreadthSeries, day: dt.date) -> BreadthEntry | None:
    """Entry for one session, if the series has it."""
    return next((e for e in series.entries if e.date == day), None)


def get_symbols_at_extreme(
    series: BreadthSeries,
    day: dt.date,
    metric: str = "new_lows",
) -> list[Symbol]:
    """Symbols at a new low (or high) on one session."""
    _check_metric(metric)
    entry = get_breadth_on_date(series, day)
    if entry is None:
        return []
    return list(entry.new_low_symbols if metric == "new_lows" else entry.new_high_symbols)


def calculate_average_breadth(
    series: BreadthSeries,
    start: dt.date,
    end: dt.date,
    metric: str = "new_lows",
) -> float:
    """Mean metric value over sessions from ``start`` to ``end`` inclusive.

    Returns 0 when no session falls in the range.
    """
    _check_metric(metric)
    values = [_value(e, metric) for e in series.entries if start <= e.date <= end]
    if not values:
        return 0.0
    return sum(values) / len(values)
