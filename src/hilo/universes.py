"""Named symbol universes.

Index constituent feeds need licensed data, so the equity universes use the
top holdings of the matching ETF as a proxy.
"""

from __future__ import annotations

from hilo.exceptions import ConfigError
from hilo.types import FrozenModel, Symbol


class Universe(FrozenModel):
    """A named list of symbols.

    :param id: Registry key.
    :param label: Display label.
    :param description: What the universe represents.
    :param symbols: Member symbols.
    :param etf_proxy: ETF whose holdings stand in for the index, if any.
    """

    id: str
    label: str
    description: str
    symbols: tuple[Symbol, ...]
    etf_proxy: str | None = None


def _symbols(*names: str) -> tuple[Symbol, ...]:
    return tuple(Symbol(n) for n in names)


UNIVERSES: dict[str, Universe] = {
    "indices": Universe(
        id="indices",
        label="Major Indices",
        description="Dow, S&P 500, Nasdaq Composite, Nasdaq 100, Russell 2000, PHLX Semiconductor",
        symbols=_symbols("DJI", "SPX", "IXIC", "NDX", "RUT", "SOX"),
    ),
    "soxx": Universe(
        id="soxx",
        label="Semiconductors (SOXX)",
        description="PHLX Semiconductor Index proxy using iShares SOXX constituents",
        symbols=_symbols(
            "NVDA", "AMD", "AVGO", "INTC", "TXN", "QCOM", "MU", "AMAT", "LRCX", "KLAC",
            "ADI", "MRVL", "NXPI", "ON", "MCHP", "ASML", "ARM", "TSM", "MPWR", "SWKS",
            "QRVO", "TER", "ENTG", "CRUS", "WOLF", "SMTC", "ALGM", "ACLS", "MKSI", "COHR",
        ),
        etf_proxy="SOXX",
    ),
    "qqq": Universe(
        id="qqq",
        label="Nasdaq 100 (QQQ)",
        description="Nasdaq 100 proxy using Invesco QQQ top holdings",
        symbols=_symbols(
            "AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOGL", "GOOG", "TSLA", "AVGO", "COST",
            "NFLX", "AMD", "PEP", "ADBE", "CSCO", "LIN", "TMUS", "INTC", "INTU", "CMCSA",
            "TXN", "QCOM", "AMGN", "HON", "AMAT", "ISRG", "BKNG", "SBUX", "VRTX", "MDLZ",
        ),
        etf_proxy="QQQ",
    ),
    "spy": Universe(
        id="spy",
        label="S&P 500 (SPY)",
        description="S&P 500 proxy using SPDR SPY top holdings",
        symbols=_symbols(
            "AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOGL", "GOOG", "BRK.B", "TSLA", "UNH",
            "XOM", "JPM", "JNJ", "V", "PG", "MA", "HD", "AVGO", "CVX", "MRK",
            "COST", "ABBV", "LLY", "PEP", "KO", "WMT", "ADBE", "BAC", "CRM", "CSCO",
        ),
        etf_proxy="SPY",
    ),
    "iwm": Universe(
        id="iwm",
        label="Russell 2000 (IWM)",
        description="Russell 2000 proxy using iShares IWM top holdings",
        symbols=_symbols(
            "SMCI", "MSTR", "CELH", "ONTO", "SPSC", "CVLT", "ANF", "EXAS", "FIX", "FN",
            "BMI", "SANM", "MOD", "LNTH", "GCM", "HALO", "NVEE", "SIG", "ACLX", "CRVL",
        ),
        etf_proxy="IWM",
    ),
    "dia": Universe(
        id="dia",
        label="Dow 30 (DIA)",
        description="Dow Jones Industrial Average constituents",
        symbols=_symbols(
            "UNH", "GS", "MSFT", "HD", "CAT", "AMGN", "MCD", "V", "CRM", "TRV",
            "AXP", "BA", "HON", "JPM", "IBM", "AAPL", "WMT", "PG", "JNJ", "CVX",
            "MRK", "DIS", "NKE", "KO", "MMM", "DOW", "CSCO", "INTC", "VZ", "WBA",
        ),
        etf_proxy="DIA",
    ),
}

_ALIASES = {
    "semiconductors": "soxx",
    "semis": "soxx",
    "sox": "soxx",
    "nasdaq": "qqq",
    "nasdaq100": "qqq",
    "sp500": "spy",
    "s&p500": "spy",
    "russell": "iwm",
    "russell2000": "iwm",
    "smallcaps": "iwm",
    "dow": "dia",
    "dow30": "dia",
    "djia": "dia",
}


def get_universe(name: str) -> Universe:
    """Look up a universe by id or alias (case-insensitive).

    :raises ConfigError: If the name is unknown.
    """
    key = name.lower().strip()
    key = _ALIASES.get(key, key)
    if key not in UNIVERSES:
        raise ConfigError(
            f"Unknown universe '{name}'. Available: {sorted(UNIVERSES)}"
        )
    return UNIVERSES[key]


def list_universes() -> list[Universe]:
    """All registered universes."""
    return list(UNIVERSES.values())
