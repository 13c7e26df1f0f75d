from __future__ import annotations

import json
from pathlib import Path

from utils.i18n import I18N, default_locales_dir


def write_locale(base: Path, locale: str, payload: dict[str, str]) -> None:
    (base / f"{locale}.json").write_text(json.dumps(payload), encoding="utf-8")


def test_lookup_falls_back_to_default_locale(tmp_path: Path) -> None:
    write_locale(tmp_path, "en-US", {"greeting": "Hello {user}", "bye": "Bye"})
    write_locale(tmp_path, "pt-BR", {"greeting": "Olá {user}"})
    i18n = I18N(tmp_path, "en-US", ["pt-BR"])

    assert i18n.t("greeting", user="Bob") == "Hello Bob"
    assert i18n.t("greeting", locale="pt-BR", user="Bob") == "Olá Bob"
    assert i18n.t("bye", locale="pt-BR") == "Bye"
    assert i18n.t("unknown.key") == "unknown.key"


def test_resolve_matches_language_family(tmp_path: Path) -> None:
    i18n = I18N(tmp_path, "en-US", ["pt-BR"])

    assert i18n.resolve("pt-BR") == "pt-BR"
    assert i18n.resolve("pt") == "pt-BR"
    assert i18n.resolve("en-GB") == "en-US"
    assert i18n.resolve("ja") == "en-US"
    assert i18n.resolve(None) == "en-US"


def test_missing_placeholders_are_left_in_place(tmp_path: Path) -> None:
    write_locale(tmp_path, "en-US", {"welcome": "Ticket #{number} for {user}"})
    i18n = I18N(tmp_path, "en-US")

    assert i18n.t("welcome", number=3) == "Ticket #3 for {user}"


def test_load_all_reports_missing_keys(tmp_path: Path, caplog) -> None:
    write_locale(tmp_path, "en-US", {"a": "A", "b": "B"})
    write_locale(tmp_path, "pt-BR", {"a": "A"})
    i18n = I18N(tmp_path, "en-US", ["pt-BR", "es-ES"])

    i18n.load_all()

    assert "pt-BR is missing 1 keys: b" in caplog.text
    assert "Locale file not found" in caplog.text


def test_bundled_locales_have_the_same_keys() -> None:
    base = default_locales_dir()
    english = json.loads((base / "en-US.json").read_text(encoding="utf-8"))
    portuguese = json.loads((base / "pt-BR.json").read_text(encoding="utf-8"))

    assert set(english) == set(portuguese)
