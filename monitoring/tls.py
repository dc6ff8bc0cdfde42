"""
============================================================================
SITEWATCH - TLS VALIDATOR
============================================================================
Validates the certificate of a target and derives (valid, days remaining).

The probe runs in two stages over dedicated, short-lived connections:

1.  Capture   an unverified handshake records the presented leaf
              certificate into a TLSProbeResult, unconditionally.
2.  Verify    a HEAD request through a fresh verifying client. A trust
              failure (untrusted chain, expiry, host mismatch) rejects the
              handshake; the reason is recorded as a policy violation and
              the request raises a transport error.

Because stage 1 already captured the certificate, the failure path still
reports the real days remaining, with valid=False. A timeout or any
unexpected error yields (False, 0).

Completed results are cached per target in the counter/cache store so a
certificate is not re-validated every cycle.
============================================================================
"""

import asyncio
import contextlib
import ssl
from datetime import datetime
from typing import Callable, Optional

import httpx
from cryptography import x509

from cache.store import CacheStore
from config.settings import MonitoringSettings
from monitoring.models import CertificateInfo, TLSProbeResult, TLSStatus
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("TLSValidator")

HTTPS_PORT = 443


def normalize_https_url(host: str) -> Optional[httpx.URL]:
    """
    Turn a bare or scheme-qualified host into an HTTPS URL.

    Returns None when nothing parseable with a host remains.
    """
    if host is None:
        return None

    candidate = host.strip()
    if not candidate:
        return None

    lowered = candidate.lower()
    if lowered.startswith("http://"):
        candidate = "https://" + candidate[len("http://"):]
    elif not lowered.startswith("https://"):
        candidate = "https://" + candidate.rstrip("/")

    try:
        url = httpx.URL(candidate)
    except (httpx.InvalidURL, ValueError):
        return None

    if not url.host:
        return None
    return url


def parse_certificate(der: bytes) -> CertificateInfo:
    """Extract the validity window and names of a DER certificate."""
    certificate = x509.load_der_x509_certificate(der)
    return CertificateInfo(
        not_before=certificate.not_valid_before_utc,
        not_after=certificate.not_valid_after_utc,
        subject=certificate.subject.rfc4514_string(),
        issuer=certificate.issuer.rfc4514_string(),
    )


def find_verification_error(exc: BaseException) -> Optional[ssl.SSLCertVerificationError]:
    """Walk the exception chain for the certificate verification failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLCertVerificationError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


class TLSValidator:
    """
    Certificate validation for one target per call.

    Parameters
    ----------
    settings : MonitoringSettings
        Supplies the probe timeout and the cache TTL.
    cache : CacheStore | None
        Where completed results are cached. None disables caching.
    client_factory : Callable | None
        Builds the dedicated verifying client of stage 2.
    clock : Callable | None
        Returns the current aware UTC datetime.
    """

    def __init__(
        self,
        settings: MonitoringSettings,
        cache: Optional[CacheStore] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.timeout = settings.tls_timeout_seconds
        self.cache = cache
        self.cache_ttl = settings.ssl_cache_ttl_seconds
        self._client_factory = client_factory or self._build_client
        self._clock = clock or TimeHelper.get_utc_now

    def _build_client(self) -> httpx.AsyncClient:
        # New context and client per probe: nothing is pooled across targets.
        return httpx.AsyncClient(
            verify=ssl.create_default_context(),
            timeout=self.timeout,
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def validate(self, host: str, cache_key: Optional[str] = None) -> TLSStatus:
        """
        Validate the certificate served for *host*.

        Args:
            host: Bare host ("example.com") or URL
            cache_key: Store key of a cached result for this target

        Returns:
            TLSStatus(is_valid, days_remaining)
        """
        url = normalize_https_url(host)
        if url is None:
            logger.debug(f"[TLS] Unparsable host {host!r}, skipping probe")
            return TLSStatus.invalid()

        use_cache = bool(cache_key and self.cache is not None and self.cache_ttl)
        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return TLSStatus(bool(cached[0]), int(cached[1]))

        probe = TLSProbeResult()
        try:
            status = await asyncio.wait_for(self._probe(url, probe), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"[TLS] Check timed out for {url}")
            return TLSStatus.invalid()
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"[TLS] Network error during check for {url}: {str(e)[:200]}")
            if probe.certificate is not None:
                logger.warning(
                    f"[TLS] {url.host} presented {probe.certificate.subject} "
                    f"issued by {probe.certificate.issuer}, errors={probe.policy_errors}"
                )
                return TLSStatus(False, probe.certificate.days_remaining(self._clock()))
            return TLSStatus.invalid()
        except Exception as e:
            logger.opt(exception=e).error(f"[TLS] Unexpected error during check for {url}")
            return TLSStatus.invalid()

        if use_cache:
            await self.cache.set(cache_key, [status.is_valid, status.days_remaining], self.cache_ttl)
        return status

    # ------------------------------------------------------------------
    # PROBE STAGES
    # ------------------------------------------------------------------

    async def _probe(self, url: httpx.URL, probe: TLSProbeResult) -> TLSStatus:
        host = url.host
        port = url.port or HTTPS_PORT

        probe.certificate = await self._capture_certificate(host, port)

        async with self._client_factory() as client:
            try:
                response = await client.head(str(url))
            except httpx.ConnectError as e:
                self._record_verification(probe, e)
                raise

        certificate = probe.certificate
        if certificate is None:
            logger.warning(f"[TLS] Certificate not retrieved for {host}")
            return TLSStatus.invalid()

        trusted = response.is_success and probe.accepted
        if not trusted:
            logger.warning(
                f"[TLS] Validation failed for {host} ({certificate.subject}, "
                f"issued by {certificate.issuer}): status={response.status_code}, "
                f"errors={probe.policy_errors}"
            )

        now = self._clock()
        return TLSStatus(
            is_valid=trusted and certificate.is_current(now),
            days_remaining=certificate.days_remaining(now),
        )

    async def _capture_certificate(self, host: str, port: int) -> Optional[CertificateInfo]:
        """
        Stage 1: handshake without verification and return the leaf.
        """
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        reader, writer = await asyncio.open_connection(
            host, port, ssl=context, server_hostname=host
        )
        try:
            ssl_object = writer.get_extra_info("ssl_object")
            der = ssl_object.getpeercert(binary_form=True) if ssl_object else None
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        if not der:
            return None
        return parse_certificate(der)

    @staticmethod
    def _record_verification(probe: TLSProbeResult, exc: BaseException) -> None:
        """Record why the verifying handshake rejected the certificate."""
        error = find_verification_error(exc)
        if error is not None:
            probe.policy_errors.append(getattr(error, "verify_message", None) or str(error))
