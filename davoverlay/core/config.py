from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from core.paths import get_config_path


class AppConfig:
    _SUPPORTED_LANGUAGES = {"en", "de"}
    _SUPPORTED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}

    _DEFAULTS: dict[str, Any] = {
        "language": "en",
        "remote_scope": "apps/remote",
        "virtual_prefixes": ["/.stubs", "/.vscode"],
        "user_agent": "davoverlay",
        "trust_unreachable_probe": True,
        "log_level": "INFO",
    }

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = config_path or get_config_path()
        self._data: dict[str, Any] = {}
        self._load_or_create()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load_or_create(self) -> None:
        if not self._config_path.exists():
            self._data = dict(self._DEFAULTS)
            self.save()
            return

        try:
            content = self._config_path.read_text(encoding="utf-8")
            loaded = json.loads(content)
            if not isinstance(loaded, dict):
                loaded = {}
        except (json.JSONDecodeError, OSError):
            loaded = {}

        self._data = dict(self._DEFAULTS)
        self._data.update(loaded)

        language = str(self._data.get("language", self._DEFAULTS["language"])).strip().lower()
        if language not in self._SUPPORTED_LANGUAGES:
            language = self._DEFAULTS["language"]
        self._data["language"] = language

        self.save()

    def save(self) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(
            json.dumps(self._data, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def get_language(self) -> str:
        return str(self._data.get("language", self._DEFAULTS["language"]))

    def set_language(self, language: str) -> None:
        self._data["language"] = language
        self.save()

    def get_remote_scope(self) -> str:
        value = str(self._data.get("remote_scope", self._DEFAULTS["remote_scope"])).strip().strip("/")
        return value or self._DEFAULTS["remote_scope"]

    def set_remote_scope(self, scope: str) -> None:
        self._data["remote_scope"] = scope.strip().strip("/")
        self.save()

    def get_virtual_prefixes(self) -> list[str]:
        prefixes = self._data.get("virtual_prefixes", self._DEFAULTS["virtual_prefixes"])
        if not isinstance(prefixes, list):
            return list(self._DEFAULTS["virtual_prefixes"])

        result: list[str] = []
        for item in prefixes:
            cleaned = str(item).strip().rstrip("/")
            if not cleaned:
                continue
            if not cleaned.startswith("/"):
                cleaned = f"/{cleaned}"
            result.append(cleaned)
        return result

    def set_virtual_prefixes(self, prefixes: list[str]) -> None:
        self._data["virtual_prefixes"] = [str(item) for item in prefixes]
        self.save()

    def get_user_agent(self) -> str:
        value = str(self._data.get("user_agent", self._DEFAULTS["user_agent"])).strip()
        return value or self._DEFAULTS["user_agent"]

    def get_trust_unreachable_probe(self) -> bool:
        return bool(self._data.get("trust_unreachable_probe", self._DEFAULTS["trust_unreachable_probe"]))

    def set_trust_unreachable_probe(self, enabled: bool) -> None:
        self._data["trust_unreachable_probe"] = bool(enabled)
        self.save()

    def get_log_level(self) -> int:
        name = str(self._data.get("log_level", self._DEFAULTS["log_level"])).strip().upper()
        if name not in self._SUPPORTED_LOG_LEVELS:
            name = self._DEFAULTS["log_level"]
        return getattr(logging, name)

    def set_log_level(self, level_name: str) -> None:
        self._data["log_level"] = level_name.strip().upper()
        self.save()
