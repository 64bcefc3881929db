import datetime as _dt
import json
from pathlib import Path

import pytest

from csvwatch.config import Config, expand_time_wildcards, load_config, parse_hhmm, save_config
from csvwatch.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.json")
    assert config == Config()
    assert config.interval == 5
    assert config.stop_hhmm is None
    assert config.skip_header is True


def test_unparseable_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(path) == Config()


def test_values_are_read_from_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "app": {"app_name": "feeds", "log_path": "/var/log/feeds/%Y", "mode": "debug"},
                "crontab": {"stop": 2330},
                "watch": {"interval": 0, "skip_header": False},
            }
        )
    )
    config = load_config(path)
    assert config.app_name == "feeds"
    assert config.log_path == "/var/log/feeds/%Y"
    assert config.mode == "debug"
    assert config.stop_hhmm == 2330
    assert config.interval == 0
    assert config.skip_header is False


def test_environment_selects_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "alt.json"
    path.write_text(json.dumps({"app": {"app_name": "from-env"}}))
    monkeypatch.setenv("CSVWATCH_CONFIG", str(path))
    assert load_config().app_name == "from-env"


def test_negative_interval_is_fatal(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"watch": {"interval": -1}}))
    with pytest.raises(ConfigError):
        load_config(path)
    with pytest.raises(ConfigError):
        Config().with_overrides(interval=-5)


def test_overrides_skip_none_values() -> None:
    config = Config(interval=7).with_overrides(interval=None, skip_header=False)
    assert config.interval == 7
    assert config.skip_header is False


@pytest.mark.parametrize("value", [-1, 2400, 1260, "0930", True, None])
def test_invalid_stop_times_disable_the_stop(value: object) -> None:
    assert parse_hhmm(value) is None


def test_valid_stop_time() -> None:
    assert parse_hhmm(0) == 0
    assert parse_hhmm(2359) == 2359


def test_time_wildcards_expand_with_milliseconds() -> None:
    now = _dt.datetime(2024, 1, 2, 3, 4, 5, 678901)
    assert expand_time_wildcards("./logs/%Y%m%d", now) == "./logs/20240102"
    assert expand_time_wildcards("%H%M%S-%f", now) == "030405-678"


def test_log_file_lives_under_expanded_dir(tmp_path: Path) -> None:
    now = _dt.datetime(2024, 1, 2)
    config = Config(app_name="feeds", log_path=str(tmp_path / "%Y%m%d"))
    assert config.log_file(now) == tmp_path / "20240102" / "feeds.log"


def test_saved_config_loads_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    config = Config(app_name="feeds", stop_hhmm=715, interval=2, skip_header=False)
    save_config(config, path)
    assert load_config(path) == config
