"""
Liveness checks for saved addons.
"""
import logging
from typing import Iterable, List, Optional, Sequence

import httpx

from stremio_manager.core.concurrency import ProgressCallback, run_in_windows
from stremio_manager.core.config import settings
from stremio_manager.core.http_client import get_http_client
from stremio_manager.core.logging_config import LogCategory, mask_url_secrets
from stremio_manager.core.time_utils import utc_now
from stremio_manager.integrations.stremio_client import manifest_url_for
from stremio_manager.schemas.saved_addon import AddonHealth, HealthSummary, SavedAddon

logger = logging.getLogger(LogCategory.REMOTE)


class HealthProber:
    """
    Probes addon manifest endpoints.

    Any failure (timeout, network error, non-200 status) counts as offline.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        concurrency: Optional[int] = None,
    ):
        self._http_client = http_client
        self.timeout = timeout or settings.health_check_timeout
        self.concurrency = concurrency or settings.health_check_concurrency

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await get_http_client()

    async def is_online(self, install_url: str) -> bool:
        try:
            client = await self._client()
            response = await client.head(
                manifest_url_for(install_url),
                timeout=self.timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.debug(f"Health check failed for {mask_url_secrets(install_url)}: {type(e).__name__}")
            return False
        return response.status_code == 200

    async def probe(self, install_url: str) -> AddonHealth:
        return AddonHealth(is_online=await self.is_online(install_url), last_checked=utc_now())

    async def probe_addon(self, addon: SavedAddon) -> SavedAddon:
        """Return a copy of addon carrying a fresh health record."""
        health = await self.probe(addon.install_url)
        return addon.model_copy(update={"health": health})

    async def probe_all(
        self,
        addons: Sequence[SavedAddon],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[SavedAddon]:
        """
        Probe every addon in windows of `concurrency`.

        on_progress(completed, total) is called after each window. The
        result keeps the input order.
        """
        checked = await run_in_windows(list(addons), self.probe_addon, self.concurrency, on_progress)
        summary = health_summary(checked)
        logger.info(
            f"Health check finished: online={summary.online} offline={summary.offline} "
            f"unchecked={summary.unchecked}"
        )
        return checked


def health_summary(addons: Iterable[SavedAddon]) -> HealthSummary:
    summary = HealthSummary()
    for addon in addons:
        if addon.health is None:
            summary.unchecked += 1
        elif addon.health.is_online:
            summary.online += 1
        else:
            summary.offline += 1
    return summary
