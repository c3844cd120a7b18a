"""Request-scoped capability checks."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class PermissionContext:
    """Capabilities held by one request, plus temporary elevations.

    Instances are created per request from the caller's session, so temporary
    grants never leak into other requests for the same identity.
    """

    def __init__(self, granted: Iterable[str]) -> None:
        self._granted = frozenset(granted)
        self._temporary: list[str] = []

    def exists(self, capability: str) -> bool:
        """Return ``True`` when the capability is held, permanently or temporarily."""
        return capability in self._granted or capability in self._temporary

    @property
    def temporary_grants(self) -> tuple[str, ...]:
        return tuple(self._temporary)

    @contextmanager
    def temporary(self, *capabilities: str) -> Iterator["PermissionContext"]:
        """Grant ``capabilities`` for the duration of the block.

        Exactly the capabilities added here are revoked on exit, in grant
        order, whether the block returns or raises.
        """
        added: list[str] = []
        for capability in capabilities:
            if capability not in self._temporary:
                self._temporary.append(capability)
                added.append(capability)
        logger.debug("temporary capabilities granted: %s", added)
        try:
            yield self
        finally:
            for capability in added:
                self._temporary.remove(capability)
            logger.debug("temporary capabilities revoked: %s", added)
