from datetime import date
from unittest.mock import patch

import pytest

from PlayLog import cli
from PlayLog.errors import UpstreamError


def test_segment_arguments():
    args = cli.build_parser().parse_args(["segment", "--day", "2025-06-01", "--dry-run"])
    assert args.func is cli.handle_segment
    assert args.day == date(2025, 6, 1)
    assert args.dry_run is True
    assert args.days_ago is None


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_segment_dry_run_writes_nothing(tmp_path, monkeypatch):
    db_path = tmp_path / "playlog.db"
    monkeypatch.setenv("PLAYLOG_DB_PATH", str(db_path))
    monkeypatch.setenv("PLAYLOG_LOCAL_TZ", "America/New_York")
    with patch("PlayLog.cli.segment_window", wraps=cli.segment_window) as segment:
        cli.main(["segment", "--day", "2025-06-01", "--dry-run"])
    assert segment.call_args.kwargs["dry_run"] is True
    assert segment.call_args.args[1] == date(2025, 6, 1)


def test_totals_prints_json(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("PLAYLOG_DB_PATH", str(tmp_path / "playlog.db"))
    cli.main(["totals", "--day", "2025-06-01"])
    out = capsys.readouterr().out
    assert '"label": "2025-06-01"' in out
    assert '"total_minutes": 0' in out


def test_failures_exit_non_zero(tmp_path, monkeypatch):
    monkeypatch.setenv("PLAYLOG_DB_PATH", str(tmp_path / "playlog.db"))
    with patch("PlayLog.cli.poll_once", side_effect=UpstreamError("Steam down")):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["probe"])
    assert excinfo.value.code == 1
