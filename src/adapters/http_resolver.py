"""HTTP redirect resolver adapter.

Follows a short link's redirect chain with httpx and returns the landed URL.
This is the only network call in the conversion pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from core.config import ResolverConfig
from core.errors import ResolutionFailed

LOGGER = logging.getLogger(__name__)


class HttpRedirectResolver:
    """Resolver adapter backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: ResolverConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        # Tests inject httpx.MockTransport here.
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self._config.max_redirects,
            timeout=self._config.timeout_seconds,
            headers={"User-Agent": self._config.user_agent},
            transport=self._transport,
        )

    async def resolve(self, url: str) -> str:
        """Return the final URL after redirects, or raise ResolutionFailed.

        ``timeout_seconds`` bounds each request inside httpx and also the
        whole redirect chain.
        """

        try:
            async with self._client() as client:
                response = await asyncio.wait_for(client.get(url), self._config.timeout_seconds)
        except asyncio.TimeoutError as exc:
            LOGGER.warning("Timed out after %ss resolving %s", self._config.timeout_seconds, url)
            raise ResolutionFailed(f"no answer within {self._config.timeout_seconds}s") from exc
        except httpx.TooManyRedirects as exc:
            LOGGER.warning("Too many redirects resolving %s", url)
            raise ResolutionFailed(f"more than {self._config.max_redirects} redirects") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.warning("Error resolving %s: %s", url, exc)
            raise ResolutionFailed(str(exc)) from exc

        if not response.is_success:
            LOGGER.warning("Resolving %s ended with HTTP %s", url, response.status_code)
            raise ResolutionFailed(f"terminal status {response.status_code}")

        final_url = str(response.url)
        LOGGER.info("Resolved short link %s -> %s", url, final_url)
        return final_url
