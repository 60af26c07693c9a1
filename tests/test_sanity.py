"""Tests for data-quality heuristics."""

import datetime as dt
import logging

from hilo.engine.dual_basis import compute_dual_basis
from hilo.engine.sanity import (
    check_sanity,
    find_stale_symbols,
    find_suspicious_symbols,
    latest_dates,
)
from hilo.types import Basis

LATEST = dt.date(2024, 6, 28)


def _series(make_row, symbol, last, values):
    n = len(values)
    return [
        make_row(symbol, last - dt.timedelta(days=n - 1 - i), v, v)
        for i, v in enumerate(values)
    ]


def test_latest_dates_skip_empty(make_row) -> None:
    """Symbols without rows have no latest date."""
    rows = {"A": _series(make_row, "A", LATEST, [0, 1]), "B": []}

    assert latest_dates(rows) == {"A": LATEST}


def test_stale_beyond_tolerance(make_row) -> None:
    """Trailing by more than the tolerance is stale; exactly the tolerance is not."""
    rows = {
        "A": _series(make_row, "A", LATEST, [0, 1]),
        "B": _series(make_row, "B", LATEST - dt.timedelta(days=3), [0, 1]),
        "C": _series(make_row, "C", LATEST - dt.timedelta(days=4), [0, 1]),
        "D": [],
    }

    assert find_stale_symbols(rows, tolerance_days=3) == ["C"]


def test_stale_with_no_data() -> None:
    """An empty universe has nothing stale."""
    assert find_stale_symbols({}) == []


def test_suspicious_constant_days(make_row) -> None:
    """A series that never changes is flagged."""
    rows = {
        "FLAT": _series(make_row, "FLAT", LATEST, [7, 7, 7, 7]),
        "LIVE": _series(make_row, "LIVE", LATEST, [0, 1, 2, 0]),
        "ONE": _series(make_row, "ONE", LATEST, [4]),
    }

    assert find_suspicious_symbols(rows) == ["FLAT"]


def test_short_history_is_not_suspicious(make_bars) -> None:
    """Sentinel rows of a symbol without a full lookback are not a flat feed."""
    bars = make_bars([100.0, 101.5, 99.0, 102.0, 98.5, 103.0, 97.0, 104.0, 96.5, 105.0])
    rows = {"NEW": compute_dual_basis("NEW", bars, lookback=63)}

    assert all(r.close_basis.is_degenerate for r in rows["NEW"])
    assert find_suspicious_symbols(rows) == []
    assert check_sanity(rows).suspicious == []


def test_sentinel_rows_are_skipped_in_window(make_row) -> None:
    """Only computed rows are compared once a symbol gains a full window."""
    base = _series(make_row, "A", LATEST, [4, 4])
    sentinel = base[0].close_basis.model_copy(update={"rolling_high": 0.0})
    rows = {"A": [base[0].model_copy(update={"close_basis": sentinel})] + base[1:]}

    assert find_suspicious_symbols(rows) == []


def test_suspicious_uses_visible_window(make_row) -> None:
    """Only the trailing visible rows are inspected."""
    rows = {"A": _series(make_row, "A", LATEST, [0, 1, 5, 5, 5])}

    assert find_suspicious_symbols(rows) == []
    assert find_suspicious_symbols(rows, Basis.INTRADAY, visible_rows=3) == ["A"]


def test_check_sanity_logs_warnings(make_row, caplog) -> None:
    """Every flagged symbol is logged as a warning."""
    rows = {
        "A": _series(make_row, "A", LATEST, [0, 1, 2]),
        "B": _series(make_row, "B", LATEST - dt.timedelta(days=10), [3, 3, 3]),
    }

    with caplog.at_level(logging.WARNING, logger="hilo.engine.sanity"):
        report = check_sanity(rows)

    assert report.latest_date == LATEST
    assert report.stale == ["B"]
    assert report.suspicious == ["B"]
    assert "[SANITY] B stale" in caplog.text
    assert "[SANITY] B suspicious" in caplog.text


def test_check_sanity_clean_universe(make_row, caplog) -> None:
    """A healthy universe logs nothing."""
    rows = {"A": _series(make_row, "A", LATEST, [0, 1, 2])}

    with caplog.at_level(logging.WARNING, logger="hilo.engine.sanity"):
        report = check_sanity(rows)

    assert report.stale == []
    assert report.suspicious == []
    assert caplog.text == ""
