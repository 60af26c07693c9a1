"""Shared fixtures for building bars and dual-basis rows."""

from __future__ import annotations

import datetime as dt
from typing import Callable, Sequence

import pytest

from hilo.types import Bar, DualBasisRow, ExtremeMetrics, Symbol

START_DATE = dt.date(2024, 1, 1)


def _make_bars(
    closes: Sequence[float],
    highs: Sequence[float] | None = None,
    lows: Sequence[float] | None = None,
    symbol: str = "TEST",
    start: dt.date = START_DATE,
) -> list[Bar]:
    highs = highs if highs is not None else closes
    lows = lows if lows is not None else closes
    return [
        Bar(
            symbol=Symbol(symbol),
            date=start + dt.timedelta(days=i),
            open=close,
            high=high,
            low=low,
            close=close,
            volume=1_000_000.0,
        )
        for i, (close, high, low) in enumerate(zip(closes, highs, lows))
    ]


def _metrics(day: dt.date, days_since_high: int) -> ExtremeMetrics:
    return ExtremeMetrics(
        date=day,
        days_since_high=days_since_high,
        days_since_low=0,
        pct_from_high=0.0,
        pct_from_low=0.0,
        rolling_high=100.0,
        rolling_low=90.0,
        current_value=100.0,
    )


def _make_row(symbol: str, day: dt.date, high_days: int, close_days: int) -> DualBasisRow:
    return DualBasisRow(
        symbol=Symbol(symbol),
        date=day,
        high_basis=_metrics(day, high_days),
        close_basis=_metrics(day, close_days),
    )


@pytest.fixture
def make_bars() -> Callable[..., list[Bar]]:
    """Factory building daily bars from close (and optional high/low) series."""
    return _make_bars


@pytest.fixture
def make_row() -> Callable[..., DualBasisRow]:
    """Factory building a dual-basis row from days-since-high values."""
    return _make_row
