"""
Invite Relay - Delivery Client Tests
====================================

Runs the client against a real local aiohttp server.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp import test_utils

from conftest import make_join, make_message
from src.core.errors import DeliveryRejected, DeliveryTransportFailure
from src.core.models import Attributed
from src.services.delivery import Delivered, DeliveryClient, RejectedByServer, TransportFailure
from src.services.normalizer import normalize_join, normalize_message


@asynccontextmanager
async def running_sink(handler):
    """Serve handler at POST /webhook and yield (url, received requests)."""
    received = []

    async def record(request: web.Request) -> web.StreamResponse:
        received.append({
            "content_type": request.headers.get("Content-Type", ""),
            "json": await request.json(),
        })
        return await handler(request)

    app = web.Application()
    app.router.add_post("/webhook", record)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/webhook")), received
    finally:
        await server.close()


# =============================================================================
# Outcome Classification Tests
# =============================================================================

class TestDeliver:
    """Tests for DeliveryClient.deliver()."""

    @pytest.mark.asyncio
    async def test_2xx_is_delivered(self):
        async def ok(request):
            return web.json_response({"received": True})

        async with running_sink(ok) as (url, received):
            client = DeliveryClient(url)
            payload = normalize_join(make_join(), Attributed("xyz", "bob"))
            try:
                outcome = await client.deliver(payload)
            finally:
                await client.close()

        assert outcome == Delivered(200)
        assert outcome.ok
        assert len(received) == 1
        assert received[0]["content_type"].startswith("application/json")
        assert received[0]["json"]["inviteCode"] == "xyz"
        assert received[0]["json"]["userId"] == "123456789"

    @pytest.mark.asyncio
    async def test_500_is_rejected_without_retry(self):
        async def boom(request):
            return web.Response(status=500, text="workflow crashed")

        async with running_sink(boom) as (url, received):
            client = DeliveryClient(url)
            try:
                outcome = await client.deliver(normalize_message(make_message()))
            finally:
                await client.close()

        assert outcome == RejectedByServer(500, "workflow crashed")
        assert not outcome.ok
        assert len(received) == 1

        error = outcome.as_error()
        assert isinstance(error, DeliveryRejected)
        assert error.status == 500

    @pytest.mark.asyncio
    async def test_404_is_rejected(self):
        async def missing(request):
            return web.Response(status=404, text="webhook not registered")

        async with running_sink(missing) as (url, _):
            client = DeliveryClient(url)
            try:
                outcome = await client.deliver(normalize_message(make_message()))
            finally:
                await client.close()

        assert isinstance(outcome, RejectedByServer)
        assert outcome.status == 404

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self):
        async def slow(request):
            await asyncio.sleep(0.5)
            return web.Response(status=200)

        async with running_sink(slow) as (url, received):
            client = DeliveryClient(url, timeout=0.1)
            try:
                outcome = await client.deliver(normalize_message(make_message()))
            finally:
                await client.close()

        assert isinstance(outcome, TransportFailure)
        assert isinstance(outcome.as_error(), DeliveryTransportFailure)

    @pytest.mark.asyncio
    async def test_connection_refused_is_transport_failure(self):
        app = web.Application()
        server = test_utils.TestServer(app)
        await server.start_server()
        url = str(server.make_url("/webhook"))
        await server.close()

        client = DeliveryClient(url, timeout=2)
        try:
            outcome = await client.deliver(normalize_message(make_message()))
        finally:
            await client.close()

        assert isinstance(outcome, TransportFailure)


# =============================================================================
# Session Lifecycle Tests
# =============================================================================

class TestSessionLifecycle:
    """Tests for session ownership."""

    @pytest.mark.asyncio
    async def test_borrowed_session_is_not_closed(self):
        import aiohttp

        session = aiohttp.ClientSession()
        client = DeliveryClient("http://127.0.0.1:9/webhook", session=session)
        await client.close()

        assert not session.closed
        await session.close()

    @pytest.mark.asyncio
    async def test_deliver_starts_session_lazily(self):
        async def ok(request):
            return web.Response(status=204)

        async with running_sink(ok) as (url, _):
            client = DeliveryClient(url)
            try:
                outcome = await client.deliver(normalize_message(make_message()))
            finally:
                await client.close()

        assert outcome == Delivered(204)
