"""Signal classifier: breadth, regime, confirmations, rejections, divergences.

Days since high are the primary quantity throughout. Breadth and regime use
the CLOSE basis, which is authoritative at end of day; confirmations and
rejections compare the HIGH basis against the CLOSE basis on the same
session.

The classifier works on ``rows_by_symbol``, a mapping of symbol to its
:class:`DualBasisRow` series. The session calendar is the sorted union of the
row dates. A symbol contributes to a session only when it has a computed
(non-sentinel) row for that date, so failed symbols with empty series and
symbols without enough history drop out of every denominator.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Mapping, Sequence

from hilo.types import (
    Basis,
    BreadthStats,
    ConfirmationSignal,
    DivergenceConfidence,
    DivergenceRule,
    DivergenceSignal,
    DivergenceType,
    DualBasisRow,
    RegimeConfidence,
    RegimeInfo,
    RegimeLabel,
    RejectionRate,
    RejectionSeverity,
    RejectionSignal,
    SignalConfig,
    SignalSummary,
    Symbol,
)

DEFAULT_SIGNAL_CONFIG = SignalConfig()

RowsBySymbol = Mapping[str, Sequence[DualBasisRow]]

_SEVERITY_RANK = {
    RejectionSeverity.STRONG: 0,
    RejectionSeverity.NOTABLE: 1,
    RejectionSeverity.MILD: 2,
}

_CONFIDENCE_RANK = {
    DivergenceConfidence.HIGH: 0,
    DivergenceConfidence.MEDIUM: 1,
    DivergenceConfidence.LOW: 2,
}

DIVERGENCE_RULES: tuple[DivergenceRule, ...] = (
    DivergenceRule(
        type=DivergenceType.SMALL_CAPS_LAGGING,
        title="Small Caps Lagging",
        description="RUT far from highs while SPX/NDX near highs - risk appetite narrowing",
        leader=Symbol("SPX"),
        laggard=Symbol("RUT"),
        leader_threshold=3,
        laggard_threshold=15,
        confidence=DivergenceConfidence.HIGH,
    ),
    DivergenceRule(
        type=DivergenceType.SEMIS_LEADING,
        title="Semis Leading",
        description="SOX leading broad market - tech/AI momentum",
        leader=Symbol("SOX"),
        laggard=Symbol("SPX"),
        leader_threshold=3,
        laggard_threshold=10,
        confidence=DivergenceConfidence.MEDIUM,
    ),
    DivergenceRule(
        type=DivergenceType.GROWTH_LEADING,
        title="Growth Over Value",
        description="NDX leading DJI - growth stocks outperforming",
        leader=Symbol("NDX"),
        laggard=Symbol("DJI"),
        leader_threshold=3,
        laggard_threshold=10,
        confidence=DivergenceConfidence.MEDIUM,
    ),
    DivergenceRule(
        type=DivergenceType.DOW_LEADING,
        title="Blue Chips Leading",
        description="DJI leading NDX - rotation to defensives/value",
        leader=Symbol("DJI"),
        laggard=Symbol("NDX"),
        leader_threshold=3,
        laggard_threshold=10,
        confidence=DivergenceConfidence.MEDIUM,
    ),
    DivergenceRule(
        type=DivergenceType.BREADTH_DIVERGENCE,
        title="Breadth Divergence",
        description="RUT lagging while IXIC leads - narrow market leadership",
        leader=Symbol("IXIC"),
        laggard=Symbol("RUT"),
        leader_threshold=5,
        laggard_threshold=12,
        confidence=DivergenceConfidence.LOW,
    ),
)


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def _index_rows(rows_by_symbol: RowsBySymbol) -> dict[str, dict[dt.date, DualBasisRow]]:
    return {
        symbol: {
            row.date: row
            for row in rows
            if not (row.high_basis.is_degenerate or row.close_basis.is_degenerate)
        }
        for symbol, rows in rows_by_symbol.items()
    }


def _days_rows(
    index: Mapping[str, Mapping[dt.date, DualBasisRow]],
    day: dt.date,
) -> tuple[dict[str, int], dict[str, int]]:
    high_row: dict[str, int] = {}
    close_row: dict[str, int] = {}
    for symbol, by_date in index.items():
        row = by_date.get(day)
        if row is None:
            continue
        high_row[symbol] = row.high_basis.days_since_high
        close_row[symbol] = row.close_basis.days_since_high
    return high_row, close_row


def session_dates(rows_by_symbol: RowsBySymbol) -> list[dt.date]:
    """Sorted union of the sessions present in any symbol's series."""
    return sorted({row.date for rows in rows_by_symbol.values() for row in rows})


def extract_row(
    rows_by_symbol: RowsBySymbol,
    day: dt.date | None = None,
    basis: Basis = Basis.CLOSE,
) -> dict[str, int]:
    """Days since high of every symbol on one session.

    :param rows_by_symbol: Dual-basis rows per symbol.
    :param day: Session to extract; defaults to the latest session.
    :param basis: Basis whose days since high are returned.
    :returns: Mapping of symbol to days since high (symbols without a
        computed row that day are omitted).
    """
    if day is None:
        dates = session_dates(rows_by_symbol)
        if not dates:
            return {}
        day = dates[-1]
    high_row, close_row = _days_rows(_index_rows(rows_by_symbol), day)
    return high_row if basis == Basis.INTRADAY else close_row


# ---------------------------------------------------------------------------
# Breadth & Regime
# ---------------------------------------------------------------------------


def compute_breadth(
    close_days: Mapping[str, int | None],
    config: SignalConfig | None = None,
) -> BreadthStats:
    """Partition symbols into hot, cold and neutral by days since high.

    Symbols whose value is ``None`` have no data and are left out of the
    total.
    """
    config = config or DEFAULT_SIGNAL_CONFIG
    hot_count = 0
    cold_count = 0
    total = 0

    for days in close_days.values():
        if days is None:
            continue
        total += 1
        if days <= config.hot_threshold:
            hot_count += 1
        elif days >= config.cold_threshold:
            cold_count += 1

    return BreadthStats(
        hot_count=hot_count,
        cold_count=cold_count,
        neutral_count=total - hot_count - cold_count,
        total=total,
    )


def compute_regime(
    breadth: BreadthStats,
    config: SignalConfig | None = None,
) -> RegimeInfo:
    """Label the regime from breadth.

    A side needs ``ceil(total * regime_majority)`` symbols to win; its
    confidence is high once it also holds ``high_confidence_ratio`` of the
    universe.
    """
    config = config or DEFAULT_SIGNAL_CONFIG
    if breadth.total == 0:
        return RegimeInfo(
            label=RegimeLabel.NARROW_MIXED,
            breadth=breadth,
            confidence=RegimeConfidence.LOW,
        )

    majority_threshold = math.ceil(breadth.total * config.regime_majority)
    high_bar = breadth.total * config.high_confidence_ratio

    if breadth.hot_count >= majority_threshold:
        label = RegimeLabel.RISK_ON
        winning = breadth.hot_count
    elif breadth.cold_count >= majority_threshold:
        label = RegimeLabel.RISK_OFF
        winning = breadth.cold_count
    else:
        return RegimeInfo(
            label=RegimeLabel.NARROW_MIXED,
            breadth=breadth,
            confidence=RegimeConfidence.LOW,
        )

    confidence = RegimeConfidence.HIGH if winning >= high_bar else RegimeConfidence.MEDIUM
    return RegimeInfo(label=label, breadth=breadth, confidence=confidence)


# ---------------------------------------------------------------------------
# Confirmations & Rejections
# ---------------------------------------------------------------------------


def rejection_severity(delta: int, config: SignalConfig | None = None) -> RejectionSeverity:
    """Grade a rejection delta."""
    config = config or DEFAULT_SIGNAL_CONFIG
    if delta <= config.rejection_mild:
        return RejectionSeverity.MILD
    if delta <= config.rejection_notable:
        return RejectionSeverity.NOTABLE
    return RejectionSeverity.STRONG


def detect_rejections(
    high_days: Mapping[str, int],
    close_days: Mapping[str, int],
    day: dt.date,
    config: SignalConfig | None = None,
) -> list[RejectionSignal]:
    """Find intraday new highs that did not hold into the close.

    :param high_days: HIGH-basis days since high per symbol.
    :param close_days: CLOSE-basis days since high per symbol.
    :param day: Session the rows belong to.
    :param config: Classifier thresholds.
    :returns: Rejections, strongest first and then by delta descending.
    """
    config = config or DEFAULT_SIGNAL_CONFIG
    rejections: list[RejectionSignal] = []

    for symbol, high in high_days.items():
        close = close_days.get(symbol)
        if high is None or close is None:
            continue
        if high == 0 and close > 0:
            delta = close - high
            rejections.append(
                RejectionSignal(
                    symbol=Symbol(symbol),
                    date=day,
                    high_days=high,
                    close_days=close,
                    delta=delta,
                    severity=rejection_severity(delta, config),
                )
            )

    return sorted(rejections, key=lambda r: (_SEVERITY_RANK[r.severity], -r.delta))


def detect_confirmations(
    high_days: Mapping[str, int],
    close_days: Mapping[str, int],
    day: dt.date,
) -> list[ConfirmationSignal]:
    """Find new highs set both intraday and on the close."""
    confirmations: list[ConfirmationSignal] = []

    for symbol, high in high_days.items():
        close = close_days.get(symbol)
        if high is None or close is None:
            continue
        if high == 0 and close == 0:
            confirmations.append(ConfirmationSignal(symbol=Symbol(symbol), date=day))

    return confirmations


def _recent_sessions(rows_by_symbol: RowsBySymbol, config: SignalConfig) -> list[dt.date]:
    dates = session_dates(rows_by_symbol)
    recent = min(config.recent_rows, len(dates))
    return dates[len(dates) - recent:]


def compute_recent_rejection_rate(
    rows_by_symbol: RowsBySymbol,
    config: SignalConfig | None = None,
) -> RejectionRate:
    """Rejections per session over the trailing ``recent_rows`` sessions.

    Detection is re-run for every session rather than cached.
    """
    config = config or DEFAULT_SIGNAL_CONFIG
    index = _index_rows(rows_by_symbol)
    sessions = _recent_sessions(rows_by_symbol, config)

    count = 0
    for day in sessions:
        high_row, close_row = _days_rows(index, day)
        count += len(detect_rejections(high_row, close_row, day, config))

    return RejectionRate(
        count=count,
        sessions=len(sessions),
        rate=count / len(sessions) if sessions else 0.0,
    )


def get_all_recent_rejections(
    rows_by_symbol: RowsBySymbol,
    config: SignalConfig | None = None,
) -> list[RejectionSignal]:
    """Every rejection in the trailing sessions, newest session first."""
    config = config or DEFAULT_SIGNAL_CONFIG
    index = _index_rows(rows_by_symbol)

    rejections: list[RejectionSignal] = []
    for day in reversed(_recent_sessions(rows_by_symbol, config)):
        high_row, close_row = _days_rows(index, day)
        rejections.extend(detect_rejections(high_row, close_row, day, config))
    return rejections


# ---------------------------------------------------------------------------
# Divergences
# ---------------------------------------------------------------------------


def detect_divergences(
    latest_close_days: Mapping[str, int],
    max_results: int = 3,
    rules: Sequence[DivergenceRule] = DIVERGENCE_RULES,
) -> list[DivergenceSignal]:
    """Evaluate the leader/laggard rule table against the latest CLOSE row.

    Rules whose symbols are missing are skipped. Matches are ordered High,
    Medium, Low (table order within a tier) and truncated to ``max_results``.
    """
    divergences: list[DivergenceSignal] = []

    for rule in rules:
        leader_days = latest_close_days.get(rule.leader)
        laggard_days = latest_close_days.get(rule.laggard)
        if leader_days is None or laggard_days is None:
            continue

        if leader_days <= rule.leader_threshold and laggard_days >= rule.laggard_threshold:
            divergences.append(
                DivergenceSignal(
                    type=rule.type,
                    title=rule.title,
                    description=rule.description,
                    confidence=rule.confidence,
                    leader=rule.leader,
                    laggard=rule.laggard,
                    leader_days=leader_days,
                    laggard_days=laggard_days,
                )
            )

    divergences.sort(key=lambda d: _CONFIDENCE_RANK[d.confidence])
    return divergences[:max_results]


# ---------------------------------------------------------------------------
# Full Summary
# ---------------------------------------------------------------------------


def compute_signal_summary(
    rows_by_symbol: RowsBySymbol,
    config: SignalConfig | None = None,
    max_divergences: int = 3,
) -> SignalSummary | None:
    """Compute every classifier output for the latest session.

    :returns: The summary, or None when the universe has no sessions.
    """
    config = config or DEFAULT_SIGNAL_CONFIG
    dates = session_dates(rows_by_symbol)
    if not dates:
        return None

    latest = dates[-1]
    high_row, close_row = _days_rows(_index_rows(rows_by_symbol), latest)
    breadth = compute_breadth(close_row, config)

    return SignalSummary(
        date=latest,
        regime=compute_regime(breadth, config),
        confirmations=detect_confirmations(high_row, close_row, latest),
        rejections=detect_rejections(high_row, close_row, latest, config),
        divergences=detect_divergences(close_row, max_divergences),
        recent_rejection_rate=compute_recent_rejection_rate(rows_by_symbol, config),
    )
