"""Tests for the command-line interface."""

from pathlib import Path

import pytest
import yaml

from hilo.cli import main


@pytest.fixture
def synthetic_config(tmp_path: Path) -> Path:
    """Scan configuration over synthetic index bars."""
    path = tmp_path / "scan.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "universe": "indices",
                "lookback": 20,
                "display_days": 10,
                "data_source": "synthetic",
                "source_params": {"days": 60, "end_date": "2024-06-28"},
                "logging": {"level": "WARNING"},
            }
        )
    )
    return path


def test_no_command_prints_help(capsys) -> None:
    """Without a command the help text is shown."""
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_universes_command(capsys) -> None:
    """The universes table lists every registered universe."""
    assert main(["universes"]) == 0

    out = capsys.readouterr().out
    assert "indices" in out
    assert "Major Indices" in out


def test_scan_command(synthetic_config: Path, capsys) -> None:
    """A scan prints the regime for the latest session."""
    assert main(["scan", str(synthetic_config)]) == 0

    out = capsys.readouterr().out
    assert "EXTREMES SCAN" in out
    assert "REGIME (2024-06-28)" in out
    assert "Scanned 6 symbols, 0 failed" in out


def test_heatmap_command(synthetic_config: Path, capsys) -> None:
    """The heatmap prints one column per symbol."""
    assert main(["heatmap", str(synthetic_config), "--basis", "intraday"]) == 0

    out = capsys.readouterr().out
    assert "days_since_high (intraday basis, lookback 20)" in out
    assert "SOX" in out
    assert "2024-06-28" in out


def test_heatmap_unknown_field(synthetic_config: Path, capsys) -> None:
    """An unknown field is reported, not raised."""
    assert main(["heatmap", str(synthetic_config), "--field", "volume"]) == 1
    assert "Unknown metrics field" in capsys.readouterr().out


def test_scan_config_error(tmp_path: Path, capsys) -> None:
    """Configuration errors return a non-zero exit code."""
    assert main(["scan", str(tmp_path / "missing.yaml")]) == 1
    assert "Configuration error" in capsys.readouterr().out


def test_scan_data_source_error(tmp_path: Path, capsys) -> None:
    """A misconfigured source is reported."""
    path = tmp_path / "scan.yaml"
    path.write_text(yaml.safe_dump({"symbols": ["SPX"], "data_source": "csv"}))

    assert main(["scan", str(path)]) == 1
    assert "Data source error" in capsys.readouterr().out


def test_scan_without_data(tmp_path: Path, capsys) -> None:
    """A scan where every symbol fails returns 1."""
    path = tmp_path / "scan.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "symbols": ["SPX"],
                "data_source": "csv_dir",
                "source_params": {"directory": str(tmp_path)},
            }
        )
    )

    assert main(["scan", str(path)]) == 1
    out = capsys.readouterr().out
    assert "Scanned 0 symbols, 1 failed" in out
    assert "No data for any symbol" in out
