from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "davoverlay"
HOME_ENV_VAR = "DAVOVERLAY_HOME"


def get_app_data_dir() -> Path:
    override = os.getenv(HOME_ENV_VAR)
    if override:
        app_data_dir = Path(override).expanduser()
    else:
        if os.name == "nt":
            appdata = os.getenv("APPDATA")
            base_dir = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        else:
            base_dir = Path.home() / ".config"
        app_data_dir = base_dir / APP_NAME

    app_data_dir.mkdir(parents=True, exist_ok=True)
    return app_data_dir.resolve()


def get_logs_dir() -> Path:
    logs_dir = get_app_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir.resolve()


def get_config_path() -> Path:
    return (get_app_data_dir() / "config.json").resolve()


def get_credentials_path() -> Path:
    return (get_app_data_dir() / "credentials.json").resolve()


def ensure_runtime_directories() -> None:
    get_app_data_dir()
    get_logs_dir()


def get_translations_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "i18n" / "translations"
