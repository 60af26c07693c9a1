"""Universe scanner.

Fetches and evaluates every symbol of a universe through a bounded worker
pool. Symbols are independent, so one symbol's failure never aborts the
batch: it is reported by name with an empty series, letting the classifier
leave it out of its denominators.
"""

from __future__ import annotations

import datetime as dt
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Sequence

import pandas as pd
from pydantic import Field

from hilo.data.sources import BarSource, resolve_bar_source
from hilo.engine.dual_basis import compute_dual_basis
from hilo.engine.sanity import check_sanity
from hilo.engine.signals import compute_signal_summary, session_dates
from hilo.exceptions import DataSourceError, DataValidationError, HiloError
from hilo.types import (
    Basis,
    DateRange,
    DualBasisRow,
    ExtremeMetrics,
    FrozenModel,
    SanityReport,
    ScanConfig,
    SignalSummary,
    Symbol,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5


class UniverseResult(FrozenModel):
    """Dual-basis rows for a universe plus the symbols that failed.

    :param lookback: Window length used.
    :param rows_by_symbol: Rows per requested symbol (empty for failures).
    :param failed: Symbols whose fetch or computation failed, in request order.
    :param errors: Failure message per failed symbol.
    """

    lookback: int
    rows_by_symbol: dict[str, list[DualBasisRow]] = Field(default_factory=dict)
    failed: list[Symbol] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> list[Symbol]:
        """Symbols with data, in request order."""
        return [Symbol(s) for s in self.rows_by_symbol if s not in self.errors]

    @property
    def dates(self) -> list[dt.date]:
        """Sorted union of sessions across the universe."""
        return session_dates(self.rows_by_symbol)


class ScanReport(FrozenModel):
    """Everything a scan produces for presentation collaborators.

    :param universe: Per-symbol rows and failures.
    :param summary: Classifier outputs, None when no symbol has data.
    :param sanity: Data-quality warnings.
    """

    universe: UniverseResult
    summary: SignalSummary | None = None
    sanity: SanityReport


def _evaluate_symbol(
    source: BarSource,
    symbol: Symbol,
    lookback: int,
    date_range: DateRange | None,
    display_days: int | None,
) -> list[DualBasisRow]:
    bars = list(source.fetch_bars([symbol], date_range))
    if not bars:
        raise DataSourceError(f"No bars returned for '{symbol}'")
    rows = compute_dual_basis(symbol, bars, lookback)
    if display_days:
        rows = rows[-display_days:]
    return rows


def scan_universe(
    source: BarSource,
    symbols: Sequence[str],
    lookback: int = 63,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float | None = None,
    display_days: int | None = None,
    date_range: DateRange | None = None,
) -> UniverseResult:
    """Evaluate every symbol concurrently.

    Metrics are computed over the full fetched history and only then trimmed
    to the trailing ``display_days`` rows, so the visible rows always have a
    complete window behind them.

    :param source: Bar source to read from.
    :param symbols: Symbols to scan (duplicates are ignored).
    :param lookback: Window length in sessions.
    :param max_workers: Upper bound on concurrent symbol evaluations.
    :param timeout: Seconds to wait for the whole universe; unfinished
        symbols are reported as failed.
    :param display_days: Trailing rows kept per symbol (None = all).
    :param date_range: Optional range passed to the bar source.
    :returns: UniverseResult in request order.
    """
    ordered = [Symbol(s) for s in dict.fromkeys(symbols)]
    logger.info(
        "[SCAN] Starting scan of %d symbols (lookback=%d, workers=%d)",
        len(ordered), lookback, max_workers,
    )
    start_time = time.time()

    rows: dict[str, list[DualBasisRow]] = {}
    errors: dict[str, str] = {}

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        future_to_symbol: dict[Future[list[DualBasisRow]], Symbol] = {
            executor.submit(
                _evaluate_symbol, source, symbol, lookback, date_range, display_days
            ): symbol
            for symbol in ordered
        }
        done, not_done = wait(future_to_symbol, timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for future in done:
        symbol = future_to_symbol[future]
        try:
            rows[symbol] = future.result()
        except HiloError as e:
            logger.warning("[SCAN] %s failed: %s", symbol, e)
            errors[symbol] = str(e)
        except Exception as e:
            logger.exception("[SCAN] Unexpected error evaluating %s", symbol)
            errors[symbol] = f"{type(e).__name__}: {e}"

    for future in not_done:
        symbol = future_to_symbol[future]
        logger.warning("[SCAN] %s timed out after %ss", symbol, timeout)
        errors[symbol] = "timed out"

    result = UniverseResult(
        lookback=lookback,
        rows_by_symbol={symbol: rows.get(symbol, []) for symbol in ordered},
        failed=[symbol for symbol in ordered if symbol in errors],
        errors=errors,
    )
    logger.info(
        "[SCAN] Scan complete in %.2fs: %d succeeded, %d failed",
        time.time() - start_time, len(result.succeeded), len(result.failed),
    )
    return result


def run_scan(config: ScanConfig, source: BarSource | None = None) -> ScanReport:
    """Scan, classify and sanity-check a universe described by configuration.

    :param config: Scan configuration.
    :param source: Bar source; resolved from the configuration when omitted.
    :returns: ScanReport.
    :raises DataSourceError: If the configured source cannot be built.
    """
    source = source or resolve_bar_source(config)
    universe = scan_universe(
        source,
        config.symbols,
        lookback=config.lookback,
        max_workers=config.max_workers,
        timeout=config.timeout_seconds,
        display_days=config.display_days,
        date_range=config.date_range,
    )
    return ScanReport(
        universe=universe,
        summary=compute_signal_summary(
            universe.rows_by_symbol, config.signals, config.max_divergences
        ),
        sanity=check_sanity(
            universe.rows_by_symbol,
            tolerance_days=config.stale_tolerance_days,
            visible_rows=config.display_days,
        ),
    )


def heatmap_frame(
    result: UniverseResult,
    basis: Basis | str = Basis.CLOSE,
    field: str = "days_since_high",
) -> pd.DataFrame:
    """Tabulate one metric as a sessions x symbols frame.

    Failed symbols appear as all-NaN columns so they stay visible.

    :param result: Scan result.
    :param basis: Basis to read.
    :param field: ExtremeMetrics field to tabulate.
    :returns: DataFrame indexed by session date, one column per symbol.
    :raises DataValidationError: If ``field`` is not a metrics field.
    """
    if field == "date" or field not in ExtremeMetrics.model_fields:
        raise DataValidationError(f"Unknown metrics field '{field}'")
    basis = Basis(basis)

    columns = {
        symbol: pd.Series(
            {row.date: getattr(row.metrics(basis), field) for row in rows},
            dtype="float64",
        )
        for symbol, rows in result.rows_by_symbol.items()
    }
    frame = pd.DataFrame(columns, index=pd.Index(result.dates, name="date"))
    return frame[list(result.rows_by_symbol)]
