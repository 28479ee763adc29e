"""Tests for the outbound webhook dispatcher."""

import asyncio
import time

import httpx
import pytest

from cronhooks.services import CallbackDispatcher


def _dispatcher(handler, timeout=2.0):
    return CallbackDispatcher(timeout, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_posts_without_body():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    dispatcher = _dispatcher(handler)
    result = await dispatcher.dispatch("https://example.com/hook", "nightly")
    await dispatcher.close()

    assert result.success is True
    assert result.status_code == 200
    assert result.error is None
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://example.com/hook"
    assert seen[0].content == b""


@pytest.mark.asyncio
async def test_accepts_any_success_status():
    dispatcher = _dispatcher(lambda request: httpx.Response(204))

    result = await dispatcher.dispatch("https://example.com/hook", "nightly")

    assert result.success is True
    assert result.status_code == 204
    await dispatcher.close()


@pytest.mark.parametrize("status_code", [301, 404, 500, 503])
@pytest.mark.asyncio
async def test_non_success_status_is_a_failure(status_code):
    dispatcher = _dispatcher(lambda request: httpx.Response(status_code))

    result = await dispatcher.dispatch("https://example.com/hook", "nightly")

    assert result.success is False
    assert result.status_code == status_code
    assert str(status_code) in result.error
    await dispatcher.close()


@pytest.mark.asyncio
async def test_connection_error_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher = _dispatcher(handler)
    result = await dispatcher.dispatch("https://unreachable.invalid/hook", "nightly")

    assert result.success is False
    assert result.status_code is None
    assert "ConnectError" in result.error
    await dispatcher.close()


@pytest.mark.asyncio
async def test_timeout_is_reported_not_raised():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    dispatcher = _dispatcher(handler, timeout=1.5)
    result = await dispatcher.dispatch("https://example.com/slow", "nightly")

    assert result.success is False
    assert "timed out after 1.5s" in result.error
    await dispatcher.close()


@pytest.mark.asyncio
async def test_unexpected_handler_error_is_reported_not_raised():
    def handler(request):
        raise RuntimeError("kaboom")

    dispatcher = _dispatcher(handler)
    result = await dispatcher.dispatch("https://example.com/hook", "nightly")

    assert result.success is False
    assert "kaboom" in result.error
    await dispatcher.close()


@pytest.mark.asyncio
async def test_client_is_reused_and_recreated_after_close():
    dispatcher = _dispatcher(lambda request: httpx.Response(200))

    await dispatcher.dispatch("https://example.com/a", "a")
    first = dispatcher._client
    await dispatcher.dispatch("https://example.com/b", "b")
    assert dispatcher._client is first

    await dispatcher.close()
    assert dispatcher._client is None
    await dispatcher.close()

    result = await dispatcher.dispatch("https://example.com/c", "c")
    assert result.success is True
    assert dispatcher._client is not first
    await dispatcher.close()


@pytest.mark.asyncio
async def test_trickling_response_is_cut_off_at_the_deadline():
    async def trickle(reader, writer):
        await reader.readuntil(b"\r\n\r\n")
        writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: 6\r\n\r\n")
        try:
            for _ in range(6):
                await writer.drain()
                await asyncio.sleep(0.25)
                writer.write(b"x")
        except ConnectionError:
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(trickle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    dispatcher = CallbackDispatcher(0.5, transport=httpx.AsyncHTTPTransport())
    try:
        started = time.monotonic()
        result = await dispatcher.dispatch(f"http://127.0.0.1:{port}/hook", "slow")
        elapsed = time.monotonic() - started
    finally:
        await dispatcher.close()
        server.close()
        await server.wait_closed()

    assert result.success is False
    assert "timed out after 0.5s" in result.error
    assert elapsed < 1.2
