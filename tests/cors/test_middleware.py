# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Integration tests for CorsMiddleware via ConfigCorser handlers."""

from __future__ import annotations

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient
from structlog.testing import capture_logs

from corser.core.config import Config
from corser.cors.corser import ConfigCorser
from corser.cors.middleware import origin_patterns_to_regex

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def hello(request: Request):
    if request.method == "OPTIONS":
        return Response(status_code=204)
    return JSONResponse({"msg": "hello"})


HELLO_ROUTE = Route("/hello", hello, methods=["GET", "POST", "OPTIONS"])


def make_client(section: dict | None) -> TestClient:
    data = {"cors_options": section} if section is not None else {}
    corser = ConfigCorser(Config(data))
    app = Starlette(routes=[HELLO_ROUTE], middleware=[corser.cors_middleware()])
    return TestClient(app)


def preflight(client: TestClient, origin: str, method: str, headers: str | None = None):
    request_headers = {"Origin": origin, "Access-Control-Request-Method": method}
    if headers is not None:
        request_headers["Access-Control-Request-Headers"] = headers
    return client.options("/hello", headers=request_headers)


# ---------------------------------------------------------------------------
# Origin regex compilation
# ---------------------------------------------------------------------------


class TestOriginPatterns:
    def test_no_wildcards(self):
        assert origin_patterns_to_regex(["*", "http://localhost:3000"]) is None

    def test_single_wildcard(self):
        regex = origin_patterns_to_regex(["http://*.example.com"])
        assert regex == r"(?:http://.*\.example\.com)"


# ---------------------------------------------------------------------------
# Default policy
# ---------------------------------------------------------------------------


class TestDefaultPolicy:
    def setup_method(self):
        self.client = make_client(None)

    def test_preflight_allows_any_origin(self):
        resp = preflight(self.client, "http://anywhere.test", "PATCH", headers="X-Custom")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "PATCH" in resp.headers["access-control-allow-methods"]
        assert resp.headers["access-control-allow-headers"] == "X-Custom"
        assert "access-control-allow-credentials" not in resp.headers

    def test_simple_request(self):
        resp = self.client.get("/hello", headers={"Origin": "http://anywhere.test"})

        assert resp.status_code == 200
        assert resp.json() == {"msg": "hello"}
        assert resp.headers["access-control-allow-origin"] == "*"


# ---------------------------------------------------------------------------
# Configured policy
# ---------------------------------------------------------------------------


class TestConfiguredOrigins:
    def setup_method(self):
        self.client = make_client(
            {
                "allowed_origins": ["http://localhost:3000", "http://*.example.com"],
                "allowed_methods": ["get", "post"],
                "allowed_headers": ["X-Header"],
                "exposed_headers": ["X-Total-Count"],
                "allow_credentials": True,
                "max_age": 3600,
            }
        )

    def test_preflight_from_allowed_origin(self):
        resp = preflight(self.client, "http://localhost:3000", "POST", headers="X-Header")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert resp.headers["access-control-allow-credentials"] == "true"
        assert resp.headers["access-control-max-age"] == "3600"
        assert "POST" in resp.headers["access-control-allow-methods"]

    def test_preflight_rejects_unlisted_method(self):
        resp = preflight(self.client, "http://localhost:3000", "DELETE")
        assert resp.status_code == 400

    def test_preflight_rejects_unlisted_header(self):
        resp = preflight(self.client, "http://localhost:3000", "GET", headers="X-Other")
        assert resp.status_code == 400

    def test_origin_header_is_always_allowed(self):
        resp = preflight(self.client, "http://localhost:3000", "GET", headers="Origin")
        assert resp.status_code == 200

    def test_simple_request_from_allowed_origin(self):
        resp = self.client.get("/hello", headers={"Origin": "http://localhost:3000"})

        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert resp.headers["access-control-expose-headers"] == "X-Total-Count"

    def test_simple_request_from_wildcard_subdomain(self):
        resp = self.client.get("/hello", headers={"Origin": "http://api.example.com"})
        assert resp.headers["access-control-allow-origin"] == "http://api.example.com"

    def test_simple_request_from_unlisted_origin(self):
        resp = self.client.get("/hello", headers={"Origin": "http://example.org"})

        assert resp.status_code == 200
        assert "access-control-allow-origin" not in resp.headers


class TestEmptyMethods:
    def setup_method(self):
        self.client = make_client({"allowed_origins": ["*"]})

    def test_simple_methods_are_allowed(self):
        assert preflight(self.client, "http://a.test", "POST").status_code == 200

    def test_other_methods_are_rejected(self):
        assert preflight(self.client, "http://a.test", "PUT").status_code == 400


class TestEmptyOrigins:
    def setup_method(self):
        self.client = make_client({"allowed_methods": ["GET", "POST"]})

    def test_preflight_from_any_origin(self):
        resp = preflight(self.client, "http://a.test", "POST")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_simple_request_from_any_origin(self):
        resp = self.client.get("/hello", headers={"Origin": "http://a.test"})
        assert resp.headers["access-control-allow-origin"] == "*"


class TestOriginCase:
    def setup_method(self):
        self.client = make_client({"allowed_origins": ["http://LocalHost:3000", "http://*.Example.com"]})

    def test_configured_origin_is_case_insensitive(self):
        resp = self.client.get("/hello", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_request_origin_is_case_insensitive(self):
        resp = preflight(self.client, "http://API.example.COM", "GET")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://API.example.COM"


class TestMaxAge:
    def test_zero_max_age_sends_no_header(self):
        resp = preflight(make_client(None), "http://a.test", "GET")

        assert resp.status_code == 200
        assert "access-control-max-age" not in resp.headers

    def test_positive_max_age_is_sent(self):
        resp = preflight(make_client({"allowed_origins": ["*"], "max_age": 60}), "http://a.test", "GET")
        assert resp.headers["access-control-max-age"] == "60"


# ---------------------------------------------------------------------------
# Options passthrough
# ---------------------------------------------------------------------------


class TestOptionsPassthrough:
    def setup_method(self):
        self.client = make_client(
            {
                "allowed_origins": ["http://localhost:3000"],
                "allowed_methods": ["GET", "POST"],
                "options_passthrough": True,
            }
        )

    def test_preflight_reaches_downstream(self):
        resp = preflight(self.client, "http://localhost:3000", "POST")

        assert resp.status_code == 204
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert "POST" in resp.headers["access-control-allow-methods"]
        assert "Origin" in resp.headers["vary"]

    def test_rejected_preflight_gets_no_cors_headers(self):
        resp = preflight(self.client, "http://evil.test", "POST")

        assert resp.status_code == 204
        assert "access-control-allow-origin" not in resp.headers

    def test_without_passthrough_middleware_answers(self):
        client = make_client({"allowed_origins": ["http://localhost:3000"], "allowed_methods": ["POST"]})
        resp = preflight(client, "http://localhost:3000", "POST")

        assert resp.status_code == 200
        assert resp.text == "OK"


# ---------------------------------------------------------------------------
# Handler factory and debug output
# ---------------------------------------------------------------------------


class TestCorsHandler:
    def test_wraps_any_asgi_app(self):
        inner = Starlette(routes=[HELLO_ROUTE])
        handler = ConfigCorser(Config({"cors_options": {"allowed_origins": ["http://localhost:3000"]}})).cors_handler()
        client = TestClient(handler(inner))

        resp = client.get("/hello", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_requests_without_origin_are_untouched(self):
        client = make_client(None)
        resp = client.get("/hello")

        assert resp.status_code == 200
        assert "access-control-allow-origin" not in resp.headers


class TestDebugLogging:
    def test_debug_logs_each_cors_request(self):
        client = make_client({"allowed_origins": ["http://localhost:3000"], "debug": True})

        with capture_logs() as logs:
            client.get("/hello", headers={"Origin": "http://localhost:3000"})

        events = [e for e in logs if e["event"] == "cors_request"]
        assert len(events) == 1
        assert events[0]["origin"] == "http://localhost:3000"
        assert events[0]["origin_allowed"] is True
        assert events[0]["preflight"] is False

    def test_no_debug_output_by_default(self):
        client = make_client({"allowed_origins": ["http://localhost:3000"]})

        with capture_logs() as logs:
            client.get("/hello", headers={"Origin": "http://localhost:3000"})

        assert not [e for e in logs if e["event"] == "cors_request"]
