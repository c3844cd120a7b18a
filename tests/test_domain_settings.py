from __future__ import annotations

from pbx_api.domain_settings import DomainSettings, SettingRow, SettingsCache, coerce_setting


def test_coerce_setting_by_kind():
    assert coerce_setting("boolean", "true") is True
    assert coerce_setting("boolean", "False") is False
    assert coerce_setting("numeric", "12") == 12
    assert coerce_setting("numeric", "1.5") == 1.5
    assert coerce_setting("numeric", "lots") == "lots"
    assert coerce_setting("text", "global") == "global"


def test_get_falls_back_to_default_for_missing_or_empty():
    settings = DomainSettings({("users", "unique"): "", ("users", "password_length"): 10})
    assert settings.get("users", "unique", "domain") == "domain"
    assert settings.get("users", "password_length", 12) == 10
    assert settings.get("limit", "users") is None


def test_domain_rows_override_defaults():
    rows = {
        "d1": [
            SettingRow("users", "password_length", "numeric", "12"),
            SettingRow("users", "password_length", "numeric", "6"),
        ]
    }
    cache = SettingsCache(lambda domain_uuid: rows.get(domain_uuid, []))

    assert cache.for_domain("d1").get("users", "password_length") == 6
    assert cache.for_domain("d2").get("users", "password_length", 12) == 12


def test_snapshot_cached_until_cleared():
    calls: list[str] = []
    rows = [SettingRow("users", "unique", "text", "global")]

    def loader(domain_uuid: str):
        calls.append(domain_uuid)
        return list(rows)

    cache = SettingsCache(loader)
    cache.for_domain("d1")
    cache.for_domain("d1")
    assert calls == ["d1"]

    rows[0] = SettingRow("users", "unique", "text", "domain")
    assert cache.for_domain("d1").get("users", "unique") == "global"

    cache.clear_cache()
    assert cache.for_domain("d1").get("users", "unique") == "domain"
    assert calls == ["d1", "d1"]
