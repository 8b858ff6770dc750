import asyncio

from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

import app.api as api_module

_SCOPE = {
    "type": "http",
    "method": "GET",
    "path": "/",
    "headers": [],
    "query_string": b"",
}


def test_security_headers_applied():
    async def run_test():
        async def call_next(_request: Request) -> Response:
            return Response()

        resp = await api_module.add_security_headers(Request(_SCOPE), call_next)

        assert resp.status_code == 200
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("X-Frame-Options") == "SAMEORIGIN"
        assert resp.headers.get("Cache-Control") == "no-store"
        assert "default-src 'self'" in resp.headers.get("Content-Security-Policy")

    asyncio.run(run_test())


def test_security_headers_preserve_existing_csp():
    async def run_test():
        async def call_next(_request: Request) -> Response:
            resp = Response()
            resp.headers["Content-Security-Policy"] = "default-src 'self'; img-src 'self' data:"
            return resp

        resp = await api_module.add_security_headers(Request(_SCOPE), call_next)

        assert resp.headers["Content-Security-Policy"] == "default-src 'self'; img-src 'self' data:"
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"

    asyncio.run(run_test())


def test_security_headers_on_api_responses():
    client = TestClient(api_module.app)
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.headers.get("X-Content-Type-Options") == "nosniff"
    assert resp.headers.get("Cache-Control") == "no-store"
