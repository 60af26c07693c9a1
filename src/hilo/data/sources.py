"""Bar source implementations.

The engine never talks to a market-data provider itself. It reads bars through
the :class:`BarSource` interface; this module provides file-backed and
in-memory implementations plus a seeded synthetic generator used when no real
data is at hand.
"""

from __future__ import annotations

import csv
import datetime as dt
import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

import numpy as np
import pandas as pd

from hilo.exceptions import DataSourceError
from hilo.types import Bar, DateRange, Symbol

if TYPE_CHECKING:
    from hilo.types import ScanConfig


class BarSource(ABC):
    """Abstract base class for bar sources.

    All bar source implementations must inherit from this class and implement
    the `fetch_bars` method.
    """

    @abstractmethod
    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        """Fetch daily bars for the given symbols.

        :param symbols: Symbols to fetch.
        :param date_range: Optional range (inclusive start, exclusive end).
        :returns: Iterator of Bar objects, in no guaranteed order.
        :raises DataSourceError: If fetching fails.
        """
        ...


def _in_range(day: dt.date, date_range: DateRange | None) -> bool:
    return date_range is None or date_range.start <= day < date_range.end


def _parse_date(value: str, date_format: str | None) -> dt.date:
    if date_format:
        return dt.datetime.strptime(value, date_format).date()
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()


class _CSVColumns:
    """Column mapping shared by the CSV sources."""

    def __init__(self, params: dict[str, Any]) -> None:
        self.symbol_col = params.get("symbol_col", "symbol")
        self.date_col = params.get("date_col", "date")
        self.open_col = params.get("open_col", "open")
        self.high_col = params.get("high_col", "high")
        self.low_col = params.get("low_col", "low")
        self.close_col = params.get("close_col", "close")
        self.volume_col = params.get("volume_col", "volume")
        self.delimiter = params.get("delimiter", ",")
        self.date_format = params.get("date_format")

    def read(
        self,
        path: Path,
        symbol_filter: set[str] | None,
        date_range: DateRange | None,
        default_symbol: str | None = None,
    ) -> Iterator[Bar]:
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {path}")

        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)

                for row in reader:
                    bar_symbol = row.get(self.symbol_col) or default_symbol
                    if not bar_symbol:
                        continue  # Skip rows without symbol
                    if symbol_filter and bar_symbol not in symbol_filter:
                        continue

                    date_str = row.get(self.date_col)
                    if not date_str:
                        continue
                    try:
                        day = _parse_date(date_str, self.date_format)
                    except ValueError as e:
                        raise DataSourceError(
                            f"Failed to parse date '{date_str}' in {path}: {e}"
                        ) from e

                    if not _in_range(day, date_range):
                        continue

                    try:
                        yield Bar(
                            symbol=Symbol(bar_symbol),
                            date=day,
                            open=float(row[self.open_col]),
                            high=float(row[self.high_col]),
                            low=float(row[self.low_col]),
                            close=float(row[self.close_col]),
                            volume=float(row.get(self.volume_col) or 0.0),
                        )
                    except (KeyError, ValueError) as e:
                        raise DataSourceError(f"Failed to parse row {row}: {e}") from e

        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error in {path}: {e}") from e
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file {path}: {e}") from e


class CSVBarSource(BarSource):
    """Bar source reading every symbol from one CSV file.

    Expected CSV format (default columns): symbol, date (ISO), open, high,
    low, close, volume.

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - symbol_col, date_col, open_col, high_col, low_col, close_col,
          volume_col: Column names (default: the lowercase field name)
        - delimiter: CSV delimiter (default: ",")
        - date_format: strptime format for dates (default: ISO format)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV bar source.

        :param source_params: Configuration with file_path and optional column mappings.
        :raises DataSourceError: If file_path is not provided.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVBarSource requires 'file_path' in source_params")
        self.columns = _CSVColumns(self.params)

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        """Read bars from the CSV file.

        :param symbols: Symbols to keep (empty = all symbols).
        :param date_range: Optional range filter.
        :returns: Iterator of Bar objects.
        :raises DataSourceError: If reading fails.
        """
        symbol_set = set(str(s) for s in symbols) if symbols else None
        yield from self.columns.read(Path(self.file_path), symbol_set, date_range)


class CSVDirectoryBarSource(BarSource):
    """Bar source reading one ``<SYMBOL>.csv`` file per symbol from a directory.

    The symbol column is optional in these files; the file name supplies it.

    :param source_params: Required parameters:
        - directory: Directory holding the CSV files.
        Optional parameters are the same as for :class:`CSVBarSource`.
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.directory = self.params.get("directory")
        if not self.directory:
            raise DataSourceError(
                "CSVDirectoryBarSource requires 'directory' in source_params"
            )
        self.columns = _CSVColumns(self.params)

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        directory = Path(self.directory)
        if not directory.is_dir():
            raise DataSourceError(f"Bar directory not found: {directory}")

        for symbol in symbols:
            path = directory / f"{symbol}.csv"
            yield from self.columns.read(path, {str(symbol)}, date_range, str(symbol))


class InMemoryBarSource(BarSource):
    """Bar source over bars the caller already holds.

    :param bars_by_symbol: Bars keyed by symbol.
    """

    def __init__(self, bars_by_symbol: Mapping[str, Iterable[Bar]]) -> None:
        self.bars_by_symbol = {symbol: list(bars) for symbol, bars in bars_by_symbol.items()}

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        for symbol in symbols:
            if symbol not in self.bars_by_symbol:
                raise DataSourceError(f"No bars held for symbol '{symbol}'")
            for bar in self.bars_by_symbol[symbol]:
                if _in_range(bar.date, date_range):
                    yield bar


class SyntheticBarSource(BarSource):
    """Bar source generating geometric Brownian motion daily bars.

    Output is reproducible: each symbol gets its own generator seeded from the
    source seed and the symbol name.

    :param source_params: Optional parameters:
        - initial_price: Starting price (default: 100.0)
        - drift: Daily log drift (default: 0.0003)
        - volatility: Daily volatility (default: 0.015)
        - seed: Random seed (default: 42)
        - days: Sessions generated when no date range is given (default: 252)
        - end_date: Last session when no date range is given (default: today)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.initial_price = float(self.params.get("initial_price", 100.0))
        self.drift = float(self.params.get("drift", 0.0003))
        self.volatility = float(self.params.get("volatility", 0.015))
        self.seed = int(self.params.get("seed", 42))
        self.days = int(self.params.get("days", 252))
        self.end_date = self.params.get("end_date")

        if self.initial_price <= 0:
            raise DataSourceError("'initial_price' must be a positive number")
        if self.volatility < 0:
            raise DataSourceError("'volatility' must be a non-negative number")
        if self.days < 1:
            raise DataSourceError("'days' must be a positive integer")

    def _sessions(self, date_range: DateRange | None) -> pd.DatetimeIndex:
        if date_range is not None:
            return pd.bdate_range(date_range.start, date_range.end, inclusive="left")
        end = pd.Timestamp(self.end_date) if self.end_date else pd.Timestamp.today().normalize()
        return pd.bdate_range(end=end, periods=self.days)

    def _rng(self, symbol: str) -> np.random.Generator:
        symbol_key = int(hashlib.md5(symbol.encode()).hexdigest()[:8], 16)
        return np.random.default_rng([self.seed, symbol_key])

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        sessions = self._sessions(date_range)
        n = len(sessions)
        if n == 0:
            return

        for symbol in symbols:
            rng = self._rng(str(symbol))
            log_returns = rng.normal(
                self.drift - 0.5 * self.volatility**2, self.volatility, n
            )
            closes = self.initial_price * np.exp(np.cumsum(log_returns))
            opens = np.concatenate(([self.initial_price], closes[:-1]))
            opens = opens * (1 + rng.normal(0, self.volatility / 4, n))
            wick = np.abs(rng.normal(0, self.volatility / 2, (2, n)))
            highs = np.maximum(opens, closes) * (1 + wick[0])
            lows = np.minimum(opens, closes) * (1 - wick[1])
            volumes = rng.integers(1_000_000, 5_000_000, n)

            for i, ts in enumerate(sessions):
                yield Bar(
                    symbol=Symbol(str(symbol)),
                    date=ts.date(),
                    open=float(opens[i]),
                    high=float(highs[i]),
                    low=float(max(lows[i], 0.0)),
                    close=float(closes[i]),
                    volume=float(volumes[i]),
                )


def resolve_bar_source(config: ScanConfig) -> BarSource:
    """Construct a bar source from configuration.

    :param config: ScanConfig with data_source and source_params.
    :returns: BarSource instance for the specified type.
    :raises DataSourceError: If data_source type is unrecognized.
    """
    source_type = config.data_source.lower()

    if source_type == "csv":
        return CSVBarSource(config.source_params)
    elif source_type == "csv_dir":
        return CSVDirectoryBarSource(config.source_params)
    elif source_type == "synthetic":
        return SyntheticBarSource(config.source_params)
    else:
        raise DataSourceError(
            f"Unrecognized data source type: '{config.data_source}'. "
            f"Supported types: csv, csv_dir, synthetic"
        )
