"""
Unit tests for core/net.py using httpx.MockTransport.
"""

import asyncio

import httpx
import pytest
from tenacity import wait_none

from core.net import (
    BlockedError,
    FetchError,
    HTTPClient,
    SessionPool,
    is_block_signal,
    proxy_urls_from_config,
)
from crawler.html_fetch import HTMLFetcher
from pipeline.models import WorkItem

URL = "https://careerviet.vn/jobs/all-jobs-en.html"


def make_client(handler, retries=2, max_sessions=3):
    return HTTPClient(
        max_sessions=max_sessions,
        max_request_retries=retries,
        transport=httpx.MockTransport(handler),
        wait=wait_none(),
    )


def test_fetch_text_ok():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="<html>ok</html>")

    async def run():
        client = make_client(handler)
        try:
            return await client.fetch_text(URL, headers={"Referer": "https://careerviet.vn/"})
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "<html>ok</html>"
    assert seen[0].headers["Referer"] == "https://careerviet.vn/"
    assert "Mozilla/5.0" in seen[0].headers["User-Agent"]
    assert seen[0].headers["Accept-Language"].split(",")[0] in ("en-US", "vi-VN")


def test_retries_server_errors():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, text="recovered")

    async def run():
        client = make_client(handler, retries=3)
        try:
            return await client.fetch_text(URL)
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "recovered"
    assert len(calls) == 3


def test_not_found_is_terminal():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, text="missing")

    async def run():
        client = make_client(handler, retries=3)
        try:
            await client.fetch_text(URL)
        finally:
            await client.aclose()

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status == 404
    assert not isinstance(exc_info.value, BlockedError)
    assert len(calls) == 1


def test_block_retires_sessions():
    """Each blocked attempt retires its session; the budget ends in BlockedError."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(403, text="Forbidden")

    client = make_client(handler, retries=2, max_sessions=1)

    async def run():
        try:
            await client.fetch_text(URL)
        finally:
            await client.aclose()

    with pytest.raises(BlockedError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status == 403
    assert exc_info.value.session_id == "session_3"
    assert len(calls) == 3


def test_transport_error_becomes_fetch_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        client = make_client(handler, retries=1)
        try:
            await client.fetch_text(URL)
        finally:
            await client.aclose()

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status is None
    assert exc_info.value.retryable


@pytest.mark.parametrize("status,body,blocked", [
    (403, "", True),
    (429, "slow down", True),
    (200, "<html><title>Attention Required! Captcha</title></html>", True),
    (503, "Request blocked by firewall", True),
    (200, "<html><title>Backend Engineer</title><p>Your access is never blocked</p></html>", False),
    (404, "Not found", False),
])
def test_is_block_signal(status, body, blocked):
    assert is_block_signal(status, body) is blocked


def test_proxy_urls_from_config():
    assert proxy_urls_from_config(None) == []
    assert proxy_urls_from_config("http://p:1") == ["http://p:1"]
    assert proxy_urls_from_config({"url": "http://p:2"}) == ["http://p:2"]
    assert proxy_urls_from_config({"proxyUrls": ["http://a:1", "", "http://b:1"]}) == ["http://a:1", "http://b:1"]
    assert proxy_urls_from_config({"useApifyProxy": True}) == []


def test_session_pool_round_robin_proxies():
    async def run():
        pool = SessionPool(max_sessions=3, proxy_urls=["http://a:1", "http://b:1"])
        try:
            return [pool.get().proxy for _ in range(3)], len(pool)
        finally:
            await pool.aclose()

    proxies, size = asyncio.run(run())
    assert proxies == ["http://a:1", "http://b:1", "http://a:1"]
    assert size == 3


def test_fetcher_sets_referer_by_role():
    referers = []

    def handler(request):
        referers.append(request.headers.get("Referer"))
        return httpx.Response(200, text="<html><body><h1>Job</h1></body></html>")

    async def run():
        fetcher = HTMLFetcher(make_client(handler))
        try:
            listing = await fetcher.fetch(WorkItem.seed_item(URL))
            detail = await fetcher.fetch(listing_item.detail("https://careerviet.vn/jobs/dev-1.html"))
            return listing, detail
        finally:
            await fetcher.aclose()

    listing_item = WorkItem.seed_item(URL)
    listing, detail = asyncio.run(run())
    assert referers == ["https://careerviet.vn/", "https://careerviet.vn/jobs/all-jobs-en.html"]
    assert listing.select_one("h1").text() == "Job"
    assert detail.session_id is not None
