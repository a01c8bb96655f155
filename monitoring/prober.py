"""
============================================================================
SLOT WATCH - HTTP PROBER
============================================================================
Issues one GET against the target page, follows the redirect chain and
reports where it ended. The appointment site signals "no slots" purely by
redirecting to a fixed notice page, so the final URL is all we need.
============================================================================
"""

import time
from typing import Optional

import httpx

from config.settings import MonitorSettings
from exceptions import NetworkError, describe_error
from utils.logger import get_logger


logger = get_logger("HTTPProber")


class HTTPProber:
    """
    Performs the probe request using an httpx async client.

    Features
    --------
    • Follows redirects up to ``max_redirects`` hops
    • Presents browser-like headers
    • Converts every transport failure and non-2xx final status into
      ``NetworkError`` with the original error text
    """

    def __init__(
        self,
        settings: MonitorSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.target_url = settings.target_url
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        timeout = self.settings.request_timeout
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            max_redirects=self.settings.max_redirects,
            headers=self.settings.headers,
            transport=self._transport,
        )

    async def probe(self) -> str:
        """
        Fetch the target page and return the final URL.

        Returns
        -------
        str
            URL the redirect chain ended on, or the target URL when the
            response carries none.

        Raises
        ------
        NetworkError
            On timeout, connection failure, too many redirects or a
            non-2xx final status.
        """
        start_time = time.perf_counter()

        try:
            async with self._client() as client:
                response = await client.get(self.target_url)
                response.raise_for_status()

        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request to {self.target_url} timed out after "
                f"{self.settings.request_timeout:g}s ({describe_error(e)})",
                url=self.target_url,
                cause=e,
            ) from e
        except httpx.TooManyRedirects as e:
            raise NetworkError(
                f"More than {self.settings.max_redirects} redirects: {describe_error(e)}",
                url=self.target_url,
                cause=e,
            ) from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code} from {e.request.url}",
                url=str(e.request.url),
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Request to {self.target_url} failed: {describe_error(e)}",
                url=self.target_url,
                cause=e,
            ) from e

        elapsed = time.perf_counter() - start_time
        final_url = str(response.url) or self.target_url

        logger.info(
            f"Check completed in {elapsed:.2f}s "
            f"({len(response.history)} redirects). Final URL: {final_url}"
        )
        return final_url
