from __future__ import annotations

import json
import logging
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from core.paths import get_translations_dir

_logger = logging.getLogger("davoverlay.i18n")


class I18nManager(QObject):
    language_changed = Signal(str)

    def __init__(
        self,
        default_language: str = "en",
        fallback_language: str = "en",
        translations_dir: Path | None = None,
    ) -> None:
        super().__init__()
        self._default_language = default_language
        self._fallback_language = fallback_language
        self._current_language = default_language
        self._translations_dir = translations_dir
        self._tables: dict[str, dict[str, str]] = {}
        self._loaded = False

    @property
    def current_language(self) -> str:
        return self._current_language

    def load_translations(self) -> None:
        directory = self._translations_dir or get_translations_dir()
        self._tables = {}
        self._loaded = True

        files = sorted(directory.glob("*.json")) if directory.exists() else []
        for file_path in files:
            try:
                payload = json.loads(file_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as error:
                _logger.warning("Skipping translation table %s: %s", file_path.name, error)
                continue
            if isinstance(payload, dict):
                self._tables[file_path.stem] = {str(key): str(value) for key, value in payload.items()}

        if self._tables and self._default_language not in self._tables:
            self._default_language = min(self._tables)
        if self._fallback_language not in self._tables:
            self._fallback_language = self._default_language
        if self._current_language not in self._tables:
            self._current_language = self._default_language

    def available_languages(self) -> list[str]:
        self._ensure_loaded()
        return sorted(self._tables)

    def set_language(self, language: str, emit_signal: bool = True) -> None:
        self._ensure_loaded()
        if language not in self._tables:
            language = self._default_language
        if language == self._current_language:
            return

        self._current_language = language
        if emit_signal:
            self.language_changed.emit(language)

    def has(self, key: str) -> bool:
        return self._lookup(key) is not None

    def translate(self, key: str, **kwargs: object) -> str:
        template = self._lookup(key) or key
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            return template

    def translate_error(self, error: Exception) -> str:
        """User-facing text for ``error``, falling back to its own message."""
        key = getattr(error, "message_key", None)
        if not key or not self.has(key):
            return str(error)
        return self.translate(
            key,
            path=getattr(error, "path", None) or "/",
            detail=getattr(error, "detail", str(error)),
        )

    def _lookup(self, key: str) -> str | None:
        self._ensure_loaded()
        for language in (self._current_language, self._fallback_language, self._default_language):
            value = self._tables.get(language, {}).get(key)
            if value:
                return value
        return None

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load_translations()


_i18n = I18nManager()


def initialize_i18n(language: str) -> None:
    _i18n.load_translations()
    _i18n.set_language(language, emit_signal=False)


def get_i18n() -> I18nManager:
    return _i18n


def tr(key: str, **kwargs: object) -> str:
    return _i18n.translate(key, **kwargs)


def tr_error(error: Exception) -> str:
    return _i18n.translate_error(error)
