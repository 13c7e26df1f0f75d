from __future__ import annotations

import json
import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class _KeepMissing(dict[str, object]):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class I18N:
    """Flat ``key -> template`` catalogs, one JSON file per locale.

    Lookups fall back from the requested locale to its language family
    (``pt`` -> ``pt-BR``) and then to the default locale; unknown keys render
    as the key itself.
    """

    def __init__(self, base_dir: Path, default_locale: str, supported_locales: list[str] | None = None) -> None:
        self.base_dir = base_dir
        self.default_locale = default_locale
        self.supported_locales = list(dict.fromkeys([default_locale, *(supported_locales or [])]))
        self._messages: dict[str, dict[str, str]] = {}

    def load_locale(self, locale: str) -> dict[str, str]:
        path = self.base_dir / f"{locale}.json"
        if not path.exists():
            LOGGER.warning("Locale file not found: %s", path)
            return self._messages.setdefault(locale, {})
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            LOGGER.warning("Locale file %s must contain an object", path)
            payload = {}
        self._messages[locale] = {str(k): str(v) for k, v in payload.items()}
        return self._messages[locale]

    def load_all(self) -> None:
        default = self.load_locale(self.default_locale)
        for locale in self.supported_locales:
            if locale == self.default_locale:
                continue
            missing = sorted(set(default) - set(self.load_locale(locale)))
            if missing:
                LOGGER.warning("Locale %s is missing %s keys: %s", locale, len(missing), ", ".join(missing[:10]))

    def resolve(self, locale: str | None) -> str:
        if not locale:
            return self.default_locale
        if locale in self.supported_locales:
            return locale
        language = locale.split("-", 1)[0].lower()
        for candidate in self.supported_locales:
            if candidate.split("-", 1)[0].lower() == language:
                return candidate
        return self.default_locale

    def _catalog(self, locale: str) -> dict[str, str]:
        if locale not in self._messages:
            self.load_locale(locale)
        return self._messages[locale]

    def t(self, key: str, locale: str | None = None, **kwargs: object) -> str:
        template = self._catalog(self.resolve(locale)).get(key)
        if template is None:
            template = self._catalog(self.default_locale).get(key, key)
        return template.format_map(_KeepMissing(kwargs))


def default_locales_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "config" / "locales"
