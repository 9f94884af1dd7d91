"""Tests for the upstream HTTP client"""

import unittest
from unittest.mock import patch

import httpx

from edgehost.config import RouterConfig
from edgehost.router import connection_pool
from edgehost.router.connection_pool import ConnectionPoolMetrics, create_http_client, fetch_upstream


class TestCreateClient(unittest.IsolatedAsyncioTestCase):
    async def test_client_follows_redirects(self):
        client = create_http_client(RouterConfig(connect_timeout=2.0, read_timeout=9.0))
        try:
            self.assertIsInstance(client, httpx.AsyncClient)
            self.assertTrue(client.follow_redirects)
            self.assertEqual(client.timeout.connect, 2.0)
            self.assertEqual(client.timeout.read, 9.0)
        finally:
            await client.aclose()

    async def test_default_config(self):
        client = create_http_client()
        await client.aclose()


class TestFetchUpstream(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.metrics = ConnectionPoolMetrics()
        patcher = patch.object(connection_pool, "_metrics", self.metrics)
        patcher.start()
        self.addCleanup(patcher.stop)

    async def test_success_counts_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(200, text="ok")

        async with create_http_client(transport=httpx.MockTransport(handler)) as client:
            response = await fetch_upstream(client, "https://origin.example/old")
        self.assertEqual(response.text, "ok")
        self.assertEqual(len(response.history), 1)
        snapshot = self.metrics.snapshot()
        self.assertEqual(snapshot["requests_sent"], 1)
        self.assertEqual(snapshot["redirects_followed"], 1)

    async def test_error_status_is_not_a_failure(self):
        async with create_http_client(transport=httpx.MockTransport(lambda r: httpx.Response(503))) as client:
            response = await fetch_upstream(client, "https://origin.example/")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(self.metrics.snapshot()["requests_failed"], 0)

    async def test_connect_error_is_raised_without_retry(self):
        attempts = []

        def handler(request):
            attempts.append(request.url)
            raise httpx.ConnectError("refused", request=request)

        async with create_http_client(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(httpx.ConnectError):
                await fetch_upstream(client, "https://origin.example/")
        self.assertEqual(len(attempts), 1)
        self.assertEqual(self.metrics.snapshot()["requests_failed"], 1)

    async def test_timeout_is_counted(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with create_http_client(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(httpx.ReadTimeout):
                await fetch_upstream(client, "https://origin.example/")
        snapshot = self.metrics.snapshot()
        self.assertEqual(snapshot["timeouts"], 1)
        self.assertEqual(snapshot["success_rate"], 0.0)


if __name__ == "__main__":
    unittest.main()
