"""Rolling-extremes engine: evaluator, dual-basis aggregation, signals, sanity."""

from hilo.engine.breadth import (
    BreadthEntry,
    BreadthExtremes,
    BreadthSeries,
    PeakResult,
    WashedOutAnalysis,
    WindowResult,
    analyze_breadth_extremes,
    analyze_washed_out,
    calculate_average_breadth,
    compute_breadth_series,
    find_peak_day,
    find_top_peaks,
    find_window_around_peak,
    get_breadth_on_date,
    get_symbols_at_extreme,
)
from hilo.engine.dual_basis import align_bases, compute_dual_basis
from hilo.engine.rolling import (
    EXTREME_TOLERANCE,
    days_since_high_series,
    evaluate_extremes,
    normalize_bars,
)
from hilo.engine.sanity import (
    check_sanity,
    find_stale_symbols,
    find_suspicious_symbols,
)
from hilo.engine.scanner import (
    ScanReport,
    UniverseResult,
    heatmap_frame,
    run_scan,
    scan_universe,
)
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
    session_dates,
)

__all__ = [
    # Rolling window
    "EXTREME_TOLERANCE",
    "evaluate_extremes",
    "normalize_bars",
    "days_since_high_series",
    # Dual basis
    "align_bases",
    "compute_dual_basis",
    # Signals
    "DIVERGENCE_RULES",
    "compute_breadth",
    "compute_regime",
    "detect_rejections",
    "detect_confirmations",
    "compute_recent_rejection_rate",
    "get_all_recent_rejections",
    "detect_divergences",
    "compute_signal_summary",
    "extract_row",
    "session_dates",
    # Sanity
    "check_sanity",
    "find_stale_symbols",
    "find_suspicious_symbols",
    # Breadth series
    "BreadthEntry",
    "BreadthSeries",
    "PeakResult",
    "WashedOutAnalysis",
    "compute_breadth_series",
    "find_peak_day",
    "find_top_peaks",
    "analyze_washed_out",
    "BreadthExtremes",
    "WindowResult",
    "find_window_around_peak",
    "analyze_breadth_extremes",
    "get_breadth_on_date",
    "get_symbols_at_extreme",
    "calculate_average_breadth",
    # Scanner
    "ScanReport",
    "UniverseResult",
    "scan_universe",
    "run_scan",
    "heatmap_frame",
]
