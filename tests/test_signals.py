"""Tests for the signal classifier."""

import datetime as dt

import pytest

from hilo.engine.signals import (
    DIVERGENCE_RULES,
    compute_breadth,
    compute_recent_rejection_rate,
    compute_regime,
    compute_signal_summary,
    detect_confirmations,
    detect_divergences,
    detect_rejections,
    extract_row,
    get_all_recent_rejections,
    rejection_severity,
    session_dates,
)
from hilo.types import (
    Basis,
    BreadthStats,
    DivergenceConfidence,
    DivergenceType,
    ExtremeMetrics,
    RegimeConfidence,
    RegimeLabel,
    RejectionSeverity,
    SignalConfig,
)

DAY = dt.date(2024, 6, 28)


def _days(n: int) -> list[dt.date]:
    return [DAY - dt.timedelta(days=n - 1 - i) for i in range(n)]


# =============================================================================
# Breadth & Regime
# =============================================================================


class TestBreadth:
    """Tests for compute_breadth."""

    def test_partitions_by_thresholds(self) -> None:
        """Hot at or below 3, cold at or above 15, neutral in between."""
        breadth = compute_breadth({"A": 0, "B": 3, "C": 4, "D": 14, "E": 15, "F": 40})

        assert breadth == BreadthStats(hot_count=2, cold_count=2, neutral_count=2, total=6)

    def test_missing_values_are_excluded(self) -> None:
        """Symbols without data do not count toward the total."""
        breadth = compute_breadth({"A": 0, "B": None, "C": 20})

        assert breadth.total == 2
        assert breadth.hot_count + breadth.cold_count + breadth.neutral_count == breadth.total

    def test_custom_thresholds(self) -> None:
        """Thresholds come from the config."""
        config = SignalConfig(hot_threshold=5, cold_threshold=10)

        breadth = compute_breadth({"A": 5, "B": 10, "C": 7}, config)

        assert (breadth.hot_count, breadth.cold_count, breadth.neutral_count) == (1, 1, 1)


class TestRegime:
    """Tests for compute_regime."""

    def test_four_of_six_hot_is_risk_on_medium(self) -> None:
        """4 of 6 meets the 60% majority but not the 80% confidence bar."""
        breadth = compute_breadth({"A": 0, "B": 1, "C": 2, "D": 3, "E": 10, "F": 20})

        regime = compute_regime(breadth)

        assert regime.label == RegimeLabel.RISK_ON
        assert regime.confidence == RegimeConfidence.MEDIUM
        assert regime.breadth == breadth

    def test_five_of_six_hot_is_high_confidence(self) -> None:
        """5 of 6 clears 80% of the universe."""
        breadth = compute_breadth({"A": 0, "B": 1, "C": 2, "D": 3, "E": 0, "F": 20})

        assert compute_regime(breadth).confidence == RegimeConfidence.HIGH

    def test_cold_majority_is_risk_off(self) -> None:
        """A cold majority labels the regime Risk-Off."""
        breadth = compute_breadth({"A": 30, "B": 20, "C": 15, "D": 16, "E": 2, "F": 5})

        regime = compute_regime(breadth)

        assert regime.label == RegimeLabel.RISK_OFF
        assert regime.confidence == RegimeConfidence.MEDIUM

    def test_no_majority_is_narrow_mixed(self) -> None:
        """Without a majority the regime is mixed with low confidence."""
        breadth = compute_breadth({"A": 0, "B": 1, "C": 2, "D": 20, "E": 30, "F": 8})

        regime = compute_regime(breadth)

        assert regime.label == RegimeLabel.NARROW_MIXED
        assert regime.confidence == RegimeConfidence.LOW

    def test_empty_universe_is_narrow_mixed(self) -> None:
        """No data never counts as a majority."""
        regime = compute_regime(compute_breadth({}))

        assert regime.label == RegimeLabel.NARROW_MIXED
        assert regime.confidence == RegimeConfidence.LOW
        assert regime.breadth.total == 0

    def test_majority_is_rounded_up(self) -> None:
        """With 5 symbols, 60% needs 3 hot."""
        two = compute_breadth({"A": 0, "B": 0, "C": 8, "D": 8, "E": 8})
        three = compute_breadth({"A": 0, "B": 0, "C": 0, "D": 8, "E": 8})

        assert compute_regime(two).label == RegimeLabel.NARROW_MIXED
        assert compute_regime(three).label == RegimeLabel.RISK_ON


# =============================================================================
# Confirmations & Rejections
# =============================================================================


class TestRejections:
    """Tests for rejection and confirmation detection."""

    def test_intraday_high_failing_close_is_notable(self) -> None:
        """HIGH basis 0 and CLOSE basis 4 is a notable rejection of delta 4."""
        rejections = detect_rejections({"SPX": 0}, {"SPX": 4}, DAY)

        assert len(rejections) == 1
        r = rejections[0]
        assert r.symbol == "SPX"
        assert r.date == DAY
        assert (r.high_days, r.close_days, r.delta) == (0, 4, 4)
        assert r.severity == RejectionSeverity.NOTABLE

    @pytest.mark.parametrize(
        "delta, severity",
        [
            (1, RejectionSeverity.MILD),
            (2, RejectionSeverity.MILD),
            (3, RejectionSeverity.NOTABLE),
            (5, RejectionSeverity.NOTABLE),
            (6, RejectionSeverity.STRONG),
            (60, RejectionSeverity.STRONG),
        ],
    )
    def test_severity_grading(self, delta: int, severity: RejectionSeverity) -> None:
        """Deltas 1-2 mild, 3-5 notable, 6+ strong."""
        assert rejection_severity(delta) == severity

    def test_ranked_by_severity_then_delta(self) -> None:
        """Strongest first, larger deltas first within a tier."""
        high = {"A": 0, "B": 0, "C": 0, "D": 0, "E": 0}
        close = {"A": 1, "B": 8, "C": 4, "D": 12, "E": 3}

        rejections = detect_rejections(high, close, DAY)

        assert [r.symbol for r in rejections] == ["D", "B", "C", "E", "A"]

    def test_no_rejection_without_intraday_high(self) -> None:
        """A symbol not at its intraday high cannot be rejected."""
        assert detect_rejections({"A": 1}, {"A": 5}, DAY) == []

    def test_confirmation_when_both_bases_at_high(self) -> None:
        """A close at the high confirms the intraday high."""
        confirmations = detect_confirmations({"A": 0, "B": 0, "C": 2}, {"A": 0, "B": 3, "C": 0}, DAY)

        assert [c.symbol for c in confirmations] == ["A"]
        assert confirmations[0].date == DAY

    def test_confirmation_and_rejection_are_exclusive(self) -> None:
        """No symbol is both confirmed and rejected on one session."""
        high = {"A": 0, "B": 0, "C": 0, "D": 7}
        close = {"A": 0, "B": 2, "C": 9, "D": 0}

        confirmed = {c.symbol for c in detect_confirmations(high, close, DAY)}
        rejected = {r.symbol for r in detect_rejections(high, close, DAY)}

        assert confirmed == {"A"}
        assert rejected == {"B", "C"}
        assert confirmed.isdisjoint(rejected)

    def test_symbol_missing_from_close_row_is_skipped(self) -> None:
        """Both bases are needed to classify a symbol."""
        assert detect_rejections({"A": 0}, {}, DAY) == []
        assert detect_confirmations({"A": 0}, {}, DAY) == []


class TestRecentRejections:
    """Tests for the trailing rejection rate."""

    def test_rate_over_recent_sessions(self, make_row) -> None:
        """Rejections are counted per session over the trailing window."""
        days = _days(4)
        rows = {
            "A": [make_row("A", d, 0, c) for d, c in zip(days, [2, 0, 3, 1])],
            "B": [make_row("B", d, h, c) for d, h, c in zip(days, [0, 0, 5, 0], [0, 4, 5, 0])],
        }
        config = SignalConfig(recent_rows=3)

        rate = compute_recent_rejection_rate(rows, config)

        assert rate.sessions == 3
        assert rate.count == 3
        assert rate.rate == pytest.approx(1.0)

    def test_no_sessions(self) -> None:
        """An empty universe has a zero rate."""
        rate = compute_recent_rejection_rate({})

        assert (rate.count, rate.sessions, rate.rate) == (0, 0, 0.0)

    def test_all_recent_rejections_newest_first(self, make_row) -> None:
        """Rejections are listed session by session, newest first."""
        days = _days(3)
        rows = {"A": [make_row("A", d, 0, c) for d, c in zip(days, [1, 6, 2])]}

        rejections = get_all_recent_rejections(rows)

        assert [r.date for r in rejections] == list(reversed(days))
        assert [r.delta for r in rejections] == [2, 6, 1]

    def test_degenerate_rows_are_ignored(self, make_row) -> None:
        """Sentinel rows never produce signals."""
        sentinel = ExtremeMetrics(
            date=DAY,
            days_since_high=0,
            days_since_low=0,
            pct_from_high=0.0,
            pct_from_low=0.0,
            rolling_high=0.0,
            rolling_low=0.0,
            current_value=0.0,
        )
        row = make_row("A", DAY, 0, 4).model_copy(update={"high_basis": sentinel})

        assert compute_recent_rejection_rate({"A": [row]}).count == 0


# =============================================================================
# Divergences
# =============================================================================


class TestDivergences:
    """Tests for the leader/laggard rule table."""

    def test_rule_table(self) -> None:
        """Five rules covering the major indices."""
        assert len(DIVERGENCE_RULES) == 5
        assert DIVERGENCE_RULES[0].type == DivergenceType.SMALL_CAPS_LAGGING

    def test_every_divergence_type_has_a_rule(self) -> None:
        """Each divergence kind is produced by exactly one rule."""
        assert sorted(rule.type for rule in DIVERGENCE_RULES) == sorted(DivergenceType)

    def test_orders_by_confidence(self) -> None:
        """High, Medium and Low matches come back in confidence order."""
        latest = {"SPX": 2, "RUT": 20, "IXIC": 4, "NDX": 1, "DJI": 12}

        divergences = detect_divergences(latest)

        assert [d.confidence for d in divergences] == [
            DivergenceConfidence.HIGH,
            DivergenceConfidence.MEDIUM,
            DivergenceConfidence.LOW,
        ]
        assert [d.type for d in divergences] == [
            DivergenceType.SMALL_CAPS_LAGGING,
            DivergenceType.GROWTH_LEADING,
            DivergenceType.BREADTH_DIVERGENCE,
        ]
        assert (divergences[0].leader_days, divergences[0].laggard_days) == (2, 20)

    def test_truncates_to_max_results(self) -> None:
        """Only the top matches are kept."""
        latest = {"SPX": 2, "RUT": 20, "IXIC": 4, "NDX": 1, "DJI": 12}

        divergences = detect_divergences(latest, max_results=2)

        assert [d.confidence for d in divergences] == [
            DivergenceConfidence.HIGH,
            DivergenceConfidence.MEDIUM,
        ]

    def test_missing_symbols_skip_rules(self) -> None:
        """Rules naming absent symbols do not fire."""
        assert detect_divergences({"SPX": 0}) == []

    def test_table_order_within_tier(self) -> None:
        """Matches of equal confidence keep rule-table order."""
        latest = {"SOX": 1, "SPX": 12, "NDX": 0, "DJI": 15}

        divergences = detect_divergences(latest)

        assert [d.type for d in divergences] == [
            DivergenceType.SEMIS_LEADING,
            DivergenceType.GROWTH_LEADING,
        ]

    def test_thresholds_are_inclusive(self) -> None:
        """Leader at exactly 3 and laggard at exactly 15 match."""
        divergences = detect_divergences({"SPX": 3, "RUT": 15})

        assert [d.type for d in divergences] == [DivergenceType.SMALL_CAPS_LAGGING]


# =============================================================================
# Rows & Summary
# =============================================================================


class TestSummary:
    """Tests for session extraction and the full summary."""

    def test_sessions_are_union_of_dates(self, make_row) -> None:
        """Symbols with different calendars contribute their own sessions."""
        d1, d2, d3 = _days(3)
        rows = {
            "A": [make_row("A", d1, 0, 0), make_row("A", d3, 0, 0)],
            "B": [make_row("B", d2, 0, 0)],
            "C": [],
        }

        assert session_dates(rows) == [d1, d2, d3]

    def test_extract_row_defaults_to_latest(self, make_row) -> None:
        """The latest session is used and absent symbols are omitted."""
        d1, d2 = _days(2)
        rows = {
            "A": [make_row("A", d1, 5, 6), make_row("A", d2, 0, 2)],
            "B": [make_row("B", d1, 1, 1)],
        }

        assert extract_row(rows) == {"A": 2}
        assert extract_row(rows, basis=Basis.INTRADAY) == {"A": 0}
        assert extract_row(rows, day=d1) == {"A": 6, "B": 1}
        assert extract_row({}) == {}

    def test_summary_for_latest_session(self, make_row) -> None:
        """The summary combines every classifier output."""
        d1, d2 = _days(2)
        latest = {"SPX": (0, 0), "NDX": (0, 2), "DJI": (1, 1), "RUT": (20, 20), "IXIC": (3, 3)}
        rows = {
            symbol: [make_row(symbol, d1, 9, 9), make_row(symbol, d2, h, c)]
            for symbol, (h, c) in latest.items()
        }

        summary = compute_signal_summary(rows)

        assert summary is not None
        assert summary.date == d2
        assert summary.regime.label == RegimeLabel.RISK_ON
        assert summary.regime.breadth.total == 5
        assert [c.symbol for c in summary.confirmations] == ["SPX"]
        assert [r.symbol for r in summary.rejections] == ["NDX"]
        assert summary.divergences[0].type == DivergenceType.SMALL_CAPS_LAGGING
        assert summary.recent_rejection_rate.sessions == 2
        assert summary.recent_rejection_rate.count == 1

    def test_failed_symbols_drop_out_of_breadth(self, make_row) -> None:
        """A symbol with an empty series is not in the denominator."""
        rows = {"A": [make_row("A", DAY, 0, 0)], "B": []}

        summary = compute_signal_summary(rows)

        assert summary is not None
        assert summary.regime.breadth.total == 1

    def test_no_sessions_gives_none(self) -> None:
        """Nothing to summarize."""
        assert compute_signal_summary({"A": []}) is None
