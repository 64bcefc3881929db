from pathlib import Path

import pytest

from csvwatch.cli import build_arg_parser, build_watch, main
from csvwatch.config import Config
from csvwatch.watch import AppendWatch, LatestFileWatch


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["-a"],
        ["-n", "logs"],
        ["-a", "a.csv", "-n", "logs", "d_"],
        ["-x", "a.csv"],
        ["-a", "a.csv", "extra"],
    ],
)
def test_usage_errors_exit_non_zero(argv, capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_negative_interval_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["-a", "a.csv", "--interval", "-1", "--config", str(tmp_path / "none.json")])
    assert excinfo.value.code == 2


def test_append_mode_builds_append_watch(tmp_path: Path) -> None:
    args = build_arg_parser().parse_args(["-a", str(tmp_path / "a.csv")])
    watch = build_watch(args, Config(interval=3, skip_header=False), lambda path, row: None, lambda _: None)
    assert isinstance(watch, AppendWatch)
    assert watch.interval == 3
    assert watch.cursor.skip_header is False


def test_newest_mode_builds_latest_watch(tmp_path: Path) -> None:
    args = build_arg_parser().parse_args(["-n", str(tmp_path), "d_", "--format", "json"])
    watch = build_watch(args, Config(), lambda path, row: None, lambda _: None)
    assert isinstance(watch, LatestFileWatch)
    assert watch.directory == tmp_path
    assert watch.prefix == "d_"
    assert args.format == "json"


def test_keep_header_is_rejected_in_newest_mode(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["-n", str(tmp_path), "d_", "--keep-header"])
    assert excinfo.value.code == 2
    err = capsys.readouterr().err
    assert "usage:" in err
    assert "--keep-header" in err
