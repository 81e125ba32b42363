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
"""Starlette CORS middleware driven by :class:`CorsOptions`."""

from __future__ import annotations

import functools
import re
from collections.abc import Sequence
from typing import Any

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from corser.cors.options import CorsOptions

LOGGER_NAME = "corser.cors"

SIMPLE_METHODS = ("GET", "POST", "HEAD")


def origin_patterns_to_regex(origins: Sequence[str]) -> str | None:
    """Compile origins with a single embedded ``*`` into one alternation regex.

    Returns ``None`` when no origin carries a wildcard.
    """
    patterns = []
    for origin in origins:
        if origin == "*" or "*" not in origin:
            continue
        prefix, _, suffix = origin.lower().partition("*")
        patterns.append(f"{re.escape(prefix)}.*{re.escape(suffix)}")
    if not patterns:
        return None
    return "|".join(f"(?:{p})" for p in patterns)


class CorsMiddleware(CORSMiddleware):
    """CORSMiddleware with wildcard origins, OPTIONS passthrough and debug logging.

    Origins are compared case-insensitively. A ``max_age`` of zero or less
    sends no ``Access-Control-Max-Age`` header.
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: Sequence[str] = (),
        allow_methods: Sequence[str] = ("GET",),
        allow_headers: Sequence[str] = (),
        allow_credentials: bool = False,
        allow_origin_regex: str | None = None,
        expose_headers: Sequence[str] = (),
        max_age: int = 600,
        options_passthrough: bool = False,
        debug: bool = False,
        logger: Any = None,
    ) -> None:
        super().__init__(
            app,
            allow_origins=[o.lower() for o in allow_origins],
            allow_methods=allow_methods,
            allow_headers=allow_headers,
            allow_credentials=allow_credentials,
            allow_origin_regex=allow_origin_regex,
            expose_headers=expose_headers,
            max_age=max_age,
        )
        if max_age <= 0:
            self.preflight_headers.pop("Access-Control-Max-Age", None)
        self.options_passthrough = options_passthrough
        self.debug = debug
        self.logger = logger if logger is not None else structlog.get_logger(LOGGER_NAME)

    @classmethod
    def from_options(cls, app: ASGIApp, options: CorsOptions, logger: Any = None) -> CorsMiddleware:
        """Build the middleware for *app* enforcing *options*.

        Empty origins allow every origin and empty methods allow the simple
        methods; ``Origin`` is always an allowed header.
        """
        exact_origins = [o for o in options.allowed_origins if o == "*" or "*" not in o]
        if not options.allowed_origins:
            exact_origins = ["*"]
        methods = [m.upper() for m in options.allowed_methods] or list(SIMPLE_METHODS)
        headers = list(options.allowed_headers)
        if "Origin" not in headers:
            headers.append("Origin")

        return cls(
            app,
            allow_origins=exact_origins,
            allow_methods=methods,
            allow_headers=headers,
            allow_credentials=options.allow_credentials,
            allow_origin_regex=origin_patterns_to_regex(options.allowed_origins),
            expose_headers=options.exposed_headers,
            max_age=options.max_age,
            options_passthrough=options.options_passthrough,
            debug=options.debug,
            logger=logger,
        )

    def is_allowed_origin(self, origin: str) -> bool:
        return super().is_allowed_origin(origin.lower())

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        is_preflight = (
            origin is not None and scope["method"] == "OPTIONS" and "access-control-request-method" in headers
        )

        if self.debug and origin is not None:
            self.logger.debug(
                "cors_request",
                method=scope["method"],
                path=scope.get("path"),
                origin=origin,
                preflight=is_preflight,
                origin_allowed=self.is_allowed_origin(origin),
            )

        if is_preflight and self.options_passthrough:
            await self._passthrough_preflight(scope, receive, send, headers)
            return

        await super().__call__(scope, receive, send)

    async def _passthrough_preflight(self, scope: Scope, receive: Receive, send: Send, headers: Headers) -> None:
        """Forward a preflight to the app, adding CORS headers when it is allowed."""
        response = self.preflight_response(request_headers=headers)
        cors_headers: dict[str, str] = {}
        if response.status_code == 200:
            cors_headers = {
                k: v
                for k, v in response.headers.items()
                if k.startswith("access-control-") or k == "vary"
            }
        elif self.debug:
            self.logger.debug(
                "cors_preflight_rejected", origin=headers.get("origin"), reason=bytes(response.body).decode()
            )

        send = functools.partial(self._send_with_headers, send=send, cors_headers=cors_headers)
        await self.app(scope, receive, send)

    @staticmethod
    async def _send_with_headers(message: Message, send: Send, cors_headers: dict[str, str]) -> None:
        if message["type"] == "http.response.start" and cors_headers:
            message.setdefault("headers", [])
            response_headers = MutableHeaders(scope=message)
            for key, value in cors_headers.items():
                if key == "vary":
                    response_headers.add_vary_header(value)
                else:
                    response_headers[key] = value
        await send(message)
