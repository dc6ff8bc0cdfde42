"""
Unit tests for HTTPProber.

All traffic goes through httpx.MockTransport.
"""
import asyncio

import httpx
import pytest

from config.constants import CheckStatus
from config.settings import MonitoringSettings
from monitoring.prober import HTTPProber, build_http_client

pytestmark = pytest.mark.anyio


def make_prober(handler, follow_redirects=False) -> HTTPProber:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        follow_redirects=follow_redirects,
    )
    return HTTPProber(client)


@pytest.mark.parametrize("status_code", [200, 204, 301, 302, 304])
async def test_success_and_redirect_statuses_are_up(status_code):
    prober = make_prober(lambda request: httpx.Response(status_code))

    result = await prober.probe("https://example.com")

    assert result.status == CheckStatus.UP
    assert result.status_code == status_code
    assert result.elapsed_ms >= 0


@pytest.mark.parametrize("status_code", [400, 404, 500, 503])
async def test_error_statuses_are_down(status_code):
    prober = make_prober(lambda request: httpx.Response(status_code))

    result = await prober.probe("https://example.com")

    assert result.status == CheckStatus.DOWN
    assert result.status_code == status_code
    assert result.error_message == f"HTTP {status_code}"


async def test_uses_get_method():
    seen = []

    def handler(request):
        seen.append(request.method)
        return httpx.Response(200, content=b"x" * 1024)

    await make_prober(handler).probe("https://example.com/health")

    assert seen == ["GET"]


async def test_connection_error_is_error_with_timing():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_prober(handler).probe("https://unreachable.example")

    assert result.status == CheckStatus.ERROR
    assert result.status_code is None
    assert result.elapsed_ms >= 0
    assert "ConnectError" in result.error_message


async def test_timeout_is_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await make_prober(handler).probe("https://slow.example")

    assert result.status == CheckStatus.ERROR
    assert "Timed out" in result.error_message


async def test_followed_redirect_reports_final_status():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "https://example.com/new"})
        return httpx.Response(503)

    result = await make_prober(handler, follow_redirects=True).probe("https://example.com/old")

    assert result.status == CheckStatus.DOWN
    assert result.status_code == 503


async def test_build_http_client_applies_settings():
    settings = MonitoringSettings(check_timeout_seconds=7, user_agent="probe-test/1.0")

    client = build_http_client(settings)
    try:
        assert client.headers["User-Agent"] == "probe-test/1.0"
        assert client.timeout.read == 7
        assert client.follow_redirects is True
    finally:
        await client.aclose()


async def test_cancelled_request_propagates_cancellation():
    started = asyncio.Event()

    async def handler(request):
        started.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(make_prober(handler).probe("https://hanging.example"))
    await asyncio.wait_for(started.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
