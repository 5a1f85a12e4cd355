"""Platform registry.

Keeps adapters in registration order so the set of platforms a fetch fans out
to, and the order the browser lists them in, is deterministic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from core.errors import DuplicatePlatformError
from core.models import ConnectionStatus, PlatformHandle
from core.ports import PlatformAdapter

LOGGER = logging.getLogger(__name__)


class PlatformRegistry:
    """Insertion-ordered collection of adapters keyed by platform id."""

    def __init__(self, adapters: Iterable[PlatformAdapter] = ()) -> None:
        self._platforms: dict[str, PlatformAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: PlatformAdapter) -> None:
        """Add an adapter; a repeated id is a programming error."""

        platform_id = adapter.platform_id()
        if platform_id in self._platforms:
            raise DuplicatePlatformError(platform_id)
        self._platforms[platform_id] = adapter
        LOGGER.debug("Registered platform %s", platform_id)

    def get_platform(self, platform_id: str) -> Optional[PlatformAdapter]:
        return self._platforms.get(platform_id)

    def get_configured_platforms(self) -> list[PlatformAdapter]:
        return [adapter for adapter in self._platforms.values() if adapter.is_configured()]

    def get_all_platforms(self) -> list[PlatformAdapter]:
        return list(self._platforms.values())

    def handles(self, configured_only: bool = True) -> tuple[PlatformHandle, ...]:
        adapters = self.get_configured_platforms() if configured_only else self.get_all_platforms()
        return tuple(PlatformHandle.from_adapter(adapter) for adapter in adapters)

    async def test_all_connections(self) -> dict[str, ConnectionStatus]:
        """Probe every platform concurrently.

        Unconfigured platforms are reported without a probe, and a probe that
        raises is reported as an error status rather than propagated.
        """

        async def _probe(adapter: PlatformAdapter) -> ConnectionStatus:
            if not adapter.is_configured():
                return ConnectionStatus.not_configured()
            try:
                return await adapter.test_connection()
            except Exception as exc:
                LOGGER.warning("Connection test failed for %s: %s", adapter.platform_id(), exc)
                return ConnectionStatus.error(str(exc))

        adapters = self.get_all_platforms()
        statuses = await asyncio.gather(*(_probe(adapter) for adapter in adapters))
        return {adapter.platform_id(): status for adapter, status in zip(adapters, statuses)}

    def __len__(self) -> int:
        return len(self._platforms)

    def __contains__(self, platform_id: object) -> bool:
        return platform_id in self._platforms
