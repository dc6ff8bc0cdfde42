"""
============================================================================
SITEWATCH - HTTP PROBER
============================================================================
Issues one GET against a target, reads only the response headers and maps
the outcome to a tri-state result:

    UP     2xx / 3xx
    DOWN   any other status
    ERROR  transport failure (timeout, DNS, refused connection, TLS)

The elapsed time up to the response headers, or up to the failure, is
always reported. No retry happens here: the next cycle is the retry.

Cancellation is deliberately not mapped to ERROR. asyncio.CancelledError
propagates to the caller, the cancelled probe produces no ProbeResult and
no timing sample, and nothing is recorded for that target. Only the
client's own deadline (httpx.TimeoutException) counts as an aborted probe
with an elapsed time.
============================================================================
"""

import time
from typing import Optional

import httpx

from config.constants import CheckStatus, StatusCodes
from config.settings import MonitoringSettings
from monitoring.models import ProbeResult
from utils.logger import get_logger


logger = get_logger("Prober")


def build_http_client(settings: MonitoringSettings) -> httpx.AsyncClient:
    """Shared client used by every HTTP probe of an engine."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            settings.check_timeout_seconds,
            connect=min(settings.check_timeout_seconds, 10),
        ),
        follow_redirects=settings.follow_redirects,
        headers={"User-Agent": settings.user_agent},
    )


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)


class HTTPProber:
    """
    Performs the availability probe of the pipeline.

    The body is never downloaded: the response is streamed and closed as
    soon as the status line and headers have arrived.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def probe(self, url: str) -> ProbeResult:
        """
        Probe *url* once.

        Returns:
            ProbeResult with elapsed milliseconds and the outcome
        """
        start_time = time.perf_counter()
        status_code: Optional[int] = None

        try:
            async with self.client.stream("GET", url) as response:
                status_code = response.status_code
                elapsed = _elapsed_ms(start_time)

        except httpx.TimeoutException as e:
            elapsed = _elapsed_ms(start_time)
            logger.warning(f"[HTTP] {url} timed out after {elapsed}ms: {type(e).__name__}")
            return ProbeResult(
                elapsed_ms=elapsed,
                status=CheckStatus.ERROR,
                error_message=f"Timed out ({type(e).__name__})",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            elapsed = _elapsed_ms(start_time)
            logger.warning(f"[HTTP] {url} failed after {elapsed}ms: {str(e)[:200]}")
            return ProbeResult(
                elapsed_ms=elapsed,
                status=CheckStatus.ERROR,
                error_message=f"{type(e).__name__}: {str(e)[:200]}",
            )

        if StatusCodes.is_success(status_code):
            logger.debug(f"[HTTP] {url} → {status_code} in {elapsed}ms")
            return ProbeResult(elapsed_ms=elapsed, status=CheckStatus.UP, status_code=status_code)

        logger.warning(f"[HTTP] {url} → status {status_code} in {elapsed}ms")
        return ProbeResult(
            elapsed_ms=elapsed,
            status=CheckStatus.DOWN,
            status_code=status_code,
            error_message=f"HTTP {status_code}",
        )
