#!/usr/bin/env python3
"""Command-line interface for the rolling-extremes engine."""

from __future__ import annotations

import argparse
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)


def cmd_scan(args: argparse.Namespace) -> int:
    """Scan a universe and print regime, signals and warnings."""
    from hilo.commands.scan import load_scan_config
    from hilo.engine.scanner import run_scan
    from hilo.exceptions import ConfigError, DataSourceError

    try:
        config = load_scan_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(args.log_level or config.log_level)

    print("=" * 60)
    print("EXTREMES SCAN")
    print("=" * 60)
    print(f"Symbols:   {', '.join(config.symbols)}")
    print(f"Lookback:  {config.lookback} sessions")
    print(f"Source:    {config.data_source}")

    try:
        report = run_scan(config)
    except DataSourceError as e:
        print(f"Data source error: {e}")
        return 1

    universe = report.universe
    summary = report.summary
    print(f"\nScanned {len(universe.succeeded)} symbols, {len(universe.failed)} failed")

    if summary is None:
        print("No data for any symbol. Check the data source configuration.")
        return 1

    regime = summary.regime
    breadth = regime.breadth
    print("\n" + "=" * 60)
    print(f"REGIME ({summary.date.isoformat()})")
    print("=" * 60)
    print(f"Label:       {regime.label.value} ({regime.confidence.value} confidence)")
    print(
        f"Breadth:     {breadth.hot_count} hot / {breadth.neutral_count} neutral / "
        f"{breadth.cold_count} cold of {breadth.total}"
    )
    rate = summary.recent_rejection_rate
    print(
        f"Rejections:  {rate.count} over last {rate.sessions} sessions "
        f"({rate.rate:.2f} per session)"
    )

    if summary.confirmations:
        print("\nConfirmed new highs:")
        for signal in summary.confirmations:
            print(f"   {signal.symbol}")

    if summary.rejections:
        print("\nRejected new highs:")
        for rejection in summary.rejections:
            print(
                f"   {rejection.symbol:<8} {rejection.severity.value:<8} "
                f"close {rejection.close_days}d off high (delta {rejection.delta})"
            )

    if summary.divergences:
        print("\nDivergences:")
        for divergence in summary.divergences:
            print(
                f"   [{divergence.confidence.value}] {divergence.title}: "
                f"{divergence.leader} {divergence.leader_days}d vs "
                f"{divergence.laggard} {divergence.laggard_days}d"
            )

    if universe.failed:
        print("\nFailed symbols:")
        for symbol in universe.failed:
            print(f"   {symbol}: {universe.errors[symbol]}")

    sanity = report.sanity
    for symbol in sanity.stale:
        print(f"Warning: {symbol} data is stale")
    for symbol in sanity.suspicious:
        print(f"Warning: {symbol} days-since-high never changes (possible flat feed)")

    return 0


def cmd_heatmap(args: argparse.Namespace) -> int:
    """Print one metric as a sessions x symbols table."""
    from hilo.commands.scan import load_scan_config
    from hilo.engine.scanner import heatmap_frame, scan_universe
    from hilo.data.sources import resolve_bar_source
    from hilo.exceptions import ConfigError, DataSourceError, DataValidationError

    try:
        config = load_scan_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(args.log_level or config.log_level)

    try:
        source = resolve_bar_source(config)
        result = scan_universe(
            source,
            config.symbols,
            lookback=config.lookback,
            max_workers=config.max_workers,
            timeout=config.timeout_seconds,
            display_days=config.display_days,
            date_range=config.date_range,
        )
        frame = heatmap_frame(result, args.basis, args.field)
    except (DataSourceError, DataValidationError) as e:
        print(f"Error: {e}")
        return 1

    print(f"{args.field} ({args.basis} basis, lookback {config.lookback})")
    print(frame.to_string())
    return 0


def cmd_universes(args: argparse.Namespace) -> int:
    """List the named universes."""
    from hilo.universes import list_universes

    print(f"{'ID':<10} {'Symbols':>8}  Label")
    print("-" * 50)
    for universe in list_universes():
        print(f"{universe.id:<10} {len(universe.symbols):>8}  {universe.label}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rolling highs/lows analytics CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser(
        "scan", help="Scan a universe for regime and breakout signals"
    )
    scan_parser.add_argument("config", help="Path to YAML configuration file")
    scan_parser.add_argument("--log-level", help="Override the configured log level")

    # Heatmap command
    heatmap_parser = subparsers.add_parser(
        "heatmap", help="Print a metric for every symbol and session"
    )
    heatmap_parser.add_argument("config", help="Path to YAML configuration file")
    heatmap_parser.add_argument(
        "--basis",
        default="close",
        choices=["close", "intraday"],
        help="Price basis (default: close)",
    )
    heatmap_parser.add_argument(
        "--field",
        default="days_since_high",
        help="Metrics field to tabulate (default: days_since_high)",
    )
    heatmap_parser.add_argument("--log-level", help="Override the configured log level")

    # Universes command
    subparsers.add_parser("universes", help="List named symbol universes")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "scan":
        return cmd_scan(args)
    elif args.command == "heatmap":
        return cmd_heatmap(args)
    elif args.command == "universes":
        return cmd_universes(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
