from __future__ import annotations

import json
import logging
from pathlib import Path

from core.config import AppConfig
from core.paths import get_app_data_dir, get_config_path


def test_defaults_written_on_first_load(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    config = AppConfig(path)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["remote_scope"] == "apps/remote"
    assert config.get_virtual_prefixes() == ["/.stubs", "/.vscode"]
    assert config.get_trust_unreachable_probe() is True
    assert config.get_log_level() == logging.INFO


def test_unknown_language_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"language": "xx"}), encoding="utf-8")

    assert AppConfig(path).get_language() == "en"


def test_values_are_normalized(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "config.json")
    config.set_virtual_prefixes(["staging/", "", "/.cache"])
    config.set_remote_scope("/custom/scope/")
    config.set_log_level("debug")

    reloaded = AppConfig(config.path)
    assert reloaded.get_virtual_prefixes() == ["/staging", "/.cache"]
    assert reloaded.get_remote_scope() == "custom/scope"
    assert reloaded.get_log_level() == logging.DEBUG


def test_corrupt_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    assert AppConfig(path).get_user_agent() == "davoverlay"


def test_home_override_controls_data_dir(isolated_home: Path) -> None:
    assert get_app_data_dir() == isolated_home.resolve()
    assert get_config_path().parent == isolated_home.resolve()
