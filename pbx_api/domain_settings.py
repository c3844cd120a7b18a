"""Tenant-aware settings lookups backed by the default/domain settings tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SettingRow:
    """One enabled row from ``v_default_settings`` or ``v_domain_settings``."""

    category: str
    subcategory: str
    kind: str
    value: str


SettingsLoader = Callable[[str], Iterable[SettingRow]]


def coerce_setting(kind: str, value: str) -> Any:
    """Convert a stored setting string into the type its ``kind`` declares."""
    if kind == "boolean":
        return value.strip().lower() == "true"
    if kind == "numeric":
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                return value
    return value


class DomainSettings:
    """Read-only view of the effective settings for one tenant."""

    def __init__(self, values: dict[tuple[str, str], Any]) -> None:
        self._values = values

    def get(self, category: str, key: str, default: Any = None) -> Any:
        """Return the setting value or ``default`` when unset or empty."""
        value = self._values.get((category, key))
        if value is None or value == "":
            return default
        return value


class SettingsCache:
    """Process-wide snapshot cache of tenant settings.

    Rows are loaded once per tenant; domain rows override default rows because
    the loader yields them last.
    """

    def __init__(self, loader: SettingsLoader) -> None:
        self._loader = loader
        self._snapshots: dict[str, DomainSettings] = {}
        self._lock = Lock()

    def for_domain(self, domain_uuid: str) -> DomainSettings:
        with self._lock:
            snapshot = self._snapshots.get(domain_uuid)
            if snapshot is not None:
                return snapshot
        values: dict[tuple[str, str], Any] = {}
        for row in self._loader(domain_uuid):
            values[(row.category, row.subcategory)] = coerce_setting(row.kind, row.value)
        snapshot = DomainSettings(values)
        with self._lock:
            self._snapshots[domain_uuid] = snapshot
        return snapshot

    def clear_cache(self) -> None:
        with self._lock:
            count = len(self._snapshots)
            self._snapshots.clear()
        logger.debug("settings cache cleared (%d snapshots)", count)
