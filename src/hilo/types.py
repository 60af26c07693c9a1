"""Core type definitions for the extremes engine.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages. Every derived entity is frozen: it
is recomputed from scratch on each refresh and never mutated in place.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, NewType

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Type aliases for domain-specific identifiers
Symbol = NewType("Symbol", str)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Date Types
# ---------------------------------------------------------------------------


class DateRange(FrozenModel):
    """Inclusive start, exclusive end range for bar queries.

    :param start: First session of the range (inclusive).
    :param end: End of the range (exclusive).
    """

    start: dt.date
    end: dt.date


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class Basis(str, Enum):
    """Price field used as the rolling window's reference series."""

    CLOSE = "close"
    INTRADAY = "intraday"


class Bar(FrozenModel):
    """Daily OHLCV bar for a symbol.

    Bars are owned by the bar source; the engine only reads them.

    :param symbol: Market symbol for this bar.
    :param date: Trading session of this bar.
    :param open: Opening price.
    :param high: Highest price during the session.
    :param low: Lowest price during the session.
    :param close: Closing price.
    :param volume: Traded volume during the session.
    """

    symbol: Symbol
    date: dt.date
    open: float = Field(ge=0)
    high: float = Field(ge=0)
    low: float = Field(ge=0)
    close: float = Field(ge=0)
    volume: float = Field(default=0.0, ge=0)


# ---------------------------------------------------------------------------
# Metrics Types
# ---------------------------------------------------------------------------


class ExtremeMetrics(FrozenModel):
    """Proximity of one bar to its rolling high and low under one basis.

    :param date: Session the metrics describe.
    :param days_since_high: Sessions since the rolling high was set (0..lookback).
    :param days_since_low: Sessions since the rolling low was set (0..lookback).
    :param pct_from_high: Distance below the rolling high, in percent.
    :param pct_from_low: Distance above the rolling low, in percent.
    :param rolling_high: Highest basis high-field over the window.
    :param rolling_low: Lowest basis low-field over the window.
    :param current_value: Basis high-field of this bar.
    """

    date: dt.date
    days_since_high: int = Field(ge=0)
    days_since_low: int = Field(ge=0)
    pct_from_high: float
    pct_from_low: float
    rolling_high: float
    rolling_low: float
    current_value: float

    @property
    def is_degenerate(self) -> bool:
        """True for the insufficient-history sentinel row."""
        return self.rolling_high == 0


class DualBasisRow(FrozenModel):
    """HIGH-basis and CLOSE-basis metrics of one symbol on one session.

    :param symbol: Market symbol.
    :param date: Trading session.
    :param high_basis: Metrics computed on intraday highs/lows.
    :param close_basis: Metrics computed on closing prices.
    """

    symbol: Symbol
    date: dt.date
    high_basis: ExtremeMetrics
    close_basis: ExtremeMetrics

    def metrics(self, basis: Basis) -> ExtremeMetrics:
        """Return the metrics for the requested basis."""
        if basis == Basis.INTRADAY:
            return self.high_basis
        return self.close_basis


# ---------------------------------------------------------------------------
# Signal Types
# ---------------------------------------------------------------------------


class RegimeLabel(str, Enum):
    """Market regime derived from breadth."""

    RISK_ON = "Risk-On"
    NARROW_MIXED = "Narrow / Mixed"
    RISK_OFF = "Risk-Off"


class RegimeConfidence(str, Enum):
    """Confidence tier attached to a regime label."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RejectionSeverity(str, Enum):
    """How far the close lagged an intraday new high."""

    MILD = "mild"
    NOTABLE = "notable"
    STRONG = "strong"


class DivergenceConfidence(str, Enum):
    """Confidence tier of a divergence rule."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class DivergenceType(str, Enum):
    """Kinds of leader/laggard divergences."""

    SMALL_CAPS_LAGGING = "small-caps-lagging"
    SEMIS_LEADING = "semis-leading"
    GROWTH_LEADING = "growth-leading"
    DOW_LEADING = "dow-leading"
    BREADTH_DIVERGENCE = "breadth-divergence"


class BreadthStats(FrozenModel):
    """Partition of the universe by CLOSE-basis days since high.

    :param hot_count: Symbols at or below the hot threshold.
    :param cold_count: Symbols at or above the cold threshold.
    :param neutral_count: Everything else.
    :param total: Symbols classified.
    """

    hot_count: int
    cold_count: int
    neutral_count: int
    total: int


class RegimeInfo(FrozenModel):
    """Regime label with the breadth it was derived from.

    :param label: Regime label.
    :param breadth: Breadth statistics behind the label.
    :param confidence: Confidence tier.
    """

    label: RegimeLabel
    breadth: BreadthStats
    confidence: RegimeConfidence


class RejectionSignal(FrozenModel):
    """Intraday new high that was not held into the close.

    :param symbol: Market symbol.
    :param date: Session of the rejection.
    :param high_days: HIGH-basis days since high (always 0).
    :param close_days: CLOSE-basis days since high.
    :param delta: close_days - high_days.
    :param severity: Severity tier of the delta.
    """

    symbol: Symbol
    date: dt.date
    high_days: int
    close_days: int
    delta: int
    severity: RejectionSeverity


class ConfirmationSignal(FrozenModel):
    """New high set both intraday and on the close.

    :param symbol: Market symbol.
    :param date: Session of the confirmation.
    """

    symbol: Symbol
    date: dt.date


class DivergenceRule(FrozenModel):
    """Leader/laggard rule checked against the latest CLOSE-basis row.

    :param type: Divergence kind.
    :param title: Short title.
    :param description: Trader-facing description.
    :param leader: Symbol expected near its highs.
    :param laggard: Symbol expected far from its highs.
    :param leader_threshold: Leader days since high must be <= this.
    :param laggard_threshold: Laggard days since high must be >= this.
    :param confidence: Confidence tier.
    """

    type: DivergenceType
    title: str
    description: str
    leader: Symbol
    laggard: Symbol
    leader_threshold: int
    laggard_threshold: int
    confidence: DivergenceConfidence


class DivergenceSignal(FrozenModel):
    """A divergence rule that fired.

    :param type: Divergence kind.
    :param title: Short title.
    :param description: Trader-facing description.
    :param confidence: Confidence tier.
    :param leader: Leading symbol.
    :param laggard: Lagging symbol.
    :param leader_days: Leader CLOSE-basis days since high.
    :param laggard_days: Laggard CLOSE-basis days since high.
    """

    type: DivergenceType
    title: str
    description: str
    confidence: DivergenceConfidence
    leader: Symbol
    laggard: Symbol
    leader_days: int
    laggard_days: int


class RejectionRate(FrozenModel):
    """Rejections over the trailing sessions.

    :param count: Rejections detected.
    :param sessions: Sessions scanned.
    :param rate: count / sessions, 0 when no sessions were scanned.
    """

    count: int
    sessions: int
    rate: float


class SignalSummary(FrozenModel):
    """All classifier outputs for the latest session.

    :param date: Latest session of the universe.
    :param regime: Regime and breadth.
    :param confirmations: Confirmed new highs.
    :param rejections: Rejected new highs, most significant first.
    :param divergences: Fired divergence rules, highest confidence first.
    :param recent_rejection_rate: Trailing rejection statistic.
    """

    date: dt.date
    regime: RegimeInfo
    confirmations: list[ConfirmationSignal] = Field(default_factory=list)
    rejections: list[RejectionSignal] = Field(default_factory=list)
    divergences: list[DivergenceSignal] = Field(default_factory=list)
    recent_rejection_rate: RejectionRate


class SanityReport(FrozenModel):
    """Data-quality warnings for a universe.

    :param latest_date: Most recent session across the universe, if any.
    :param stale: Symbols whose data trails the universe.
    :param suspicious: Symbols with a constant days-since-high series.
    """

    latest_date: dt.date | None = None
    stale: list[Symbol] = Field(default_factory=list)
    suspicious: list[Symbol] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class SignalConfig(FrozenModel):
    """Thresholds of the signal classifier.

    :param hot_threshold: Days since high at or below which a symbol is hot.
    :param cold_threshold: Days since high at or above which a symbol is cold.
    :param regime_majority: Share of the universe needed for a regime label.
    :param rejection_mild: Largest delta graded as a mild rejection.
    :param rejection_notable: Largest delta graded as a notable rejection.
    :param recent_rows: Trailing sessions used for the rejection rate.
    :param high_confidence_ratio: Share of the universe for "high" confidence.
    """

    hot_threshold: int = Field(default=3, ge=0)
    cold_threshold: int = Field(default=15, ge=0)
    regime_majority: float = Field(default=0.6, gt=0, le=1)
    rejection_mild: int = Field(default=2, ge=1)
    rejection_notable: int = Field(default=5, ge=1)
    recent_rows: int = Field(default=10, ge=1)
    high_confidence_ratio: float = Field(default=0.8, gt=0, le=1)

    @model_validator(mode="after")
    def _check_ordering(self) -> SignalConfig:
        if self.cold_threshold <= self.hot_threshold:
            raise ValueError("cold_threshold must be greater than hot_threshold")
        if self.rejection_notable <= self.rejection_mild:
            raise ValueError("rejection_notable must be greater than rejection_mild")
        return self


class ScanConfig(FrozenModel):
    """Configuration for a universe scan.

    :param symbols: Symbols to scan.
    :param lookback: Rolling window length in sessions.
    :param display_days: Trailing rows to keep per symbol (None = all).
    :param date_range: Optional range of bars to request.
    :param data_source: Bar source type (e.g., "csv", "csv_dir", "synthetic").
    :param source_params: Source-specific parameters.
    :param signals: Classifier thresholds.
    :param stale_tolerance_days: Calendar days before a symbol counts as stale.
    :param max_workers: Size of the per-symbol worker pool.
    :param timeout_seconds: Overall scan timeout (None = wait for all).
    :param max_divergences: Maximum divergence signals reported.
    :param log_level: Logging level.
    """

    symbols: list[Symbol]
    lookback: int = Field(default=63, ge=1)
    display_days: int | None = Field(default=None, ge=1)
    date_range: DateRange | None = None
    data_source: str = "csv_dir"
    source_params: dict[str, Any] = Field(default_factory=dict)
    signals: SignalConfig = Field(default_factory=SignalConfig)
    stale_tolerance_days: int = Field(default=3, ge=0)
    max_workers: int = Field(default=5, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)
    max_divergences: int = Field(default=3, ge=0)
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Type aliases
    "Symbol",
    # Base models
    "FrozenModel",
    # Dates
    "DateRange",
    # Market data
    "Basis",
    "Bar",
    # Metrics
    "ExtremeMetrics",
    "DualBasisRow",
    # Signals
    "RegimeLabel",
    "RegimeConfidence",
    "RejectionSeverity",
    "DivergenceConfidence",
    "DivergenceType",
    "BreadthStats",
    "RegimeInfo",
    "RejectionSignal",
    "ConfirmationSignal",
    "DivergenceRule",
    "DivergenceSignal",
    "RejectionRate",
    "SignalSummary",
    "SanityReport",
    # Configuration
    "SignalConfig",
    "ScanConfig",
]
