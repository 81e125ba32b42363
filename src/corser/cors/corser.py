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
"""Corser — lazily loads a CORS policy from configuration and builds its middleware."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, cast, runtime_checkable

from pydantic import ValidationError
from starlette.middleware import Middleware
from starlette.types import ASGIApp

from corser.core.config import StringMapGetter
from corser.cors.middleware import LOGGER_NAME, CorsMiddleware
from corser.cors.options import DEFAULT_CONFIG_KEY, DEFAULT_OPTIONS, CorsOptions
from corser.kernel.exceptions import ConfigDecodeException, ConfigFetchException, CorserException
from corser.logging.port import LoggingPort
from corser.logging.structlog_adapter import StructlogAdapter


@runtime_checkable
class Corser(Protocol):
    """Source of a CORS policy and of the middleware enforcing it."""

    def cors_options(self) -> CorsOptions: ...
    def cors_handler(self) -> Callable[[ASGIApp], ASGIApp]: ...


class ConfigCorser:
    """Corser reading its policy from a configuration section.

    The section under *config_key* is read and decoded once, on the first call
    to :meth:`cors_options`. An empty or missing section resolves to
    :data:`DEFAULT_OPTIONS`. Failures are cached too: every later call raises
    the same exception without reading the configuration again.

    Log events go to the ``corser.cors`` logger obtained from *logging_port*
    (a fresh :class:`StructlogAdapter` when omitted); the built middleware
    logs through the same logger.
    """

    def __init__(
        self,
        getter: StringMapGetter,
        config_key: str = DEFAULT_CONFIG_KEY,
        logging_port: LoggingPort | None = None,
    ) -> None:
        self._getter = getter
        self._key = config_key
        self._lock = threading.Lock()
        self._resolved = False
        self._options: CorsOptions | None = None
        self._error: CorserException | None = None
        self._logger = (logging_port or StructlogAdapter()).get_logger(LOGGER_NAME)

    @property
    def config_key(self) -> str:
        return self._key

    def cors_options(self) -> CorsOptions:
        """Return the resolved policy, loading it on first use.

        Raises:
            ConfigFetchException: the section could not be read.
            ConfigDecodeException: the section could not be decoded.
        """
        if not self._resolved:
            with self._lock:
                if not self._resolved:
                    try:
                        self._options = self._load()
                    except CorserException as exc:
                        self._error = exc
                        self._logger.error("cors_options_resolution_failed", key=self._key, error=str(exc))
                    self._resolved = True

        if self._error is not None:
            raise self._error
        return cast(CorsOptions, self._options)

    def _load(self) -> CorsOptions:
        try:
            raw = self._getter.get_string_map(self._key)
        except ConfigFetchException:
            raise
        except Exception as exc:
            raise ConfigFetchException("failed to get cors options", context={"key": self._key}) from exc

        if not raw:
            self._logger.info("cors_options_resolved", key=self._key, defaults=True)
            return DEFAULT_OPTIONS

        try:
            options = CorsOptions.model_validate(raw)
        except ValidationError as exc:
            raise ConfigDecodeException(
                f"failed to figure out cors options:\n{exc}", context={"key": self._key}
            ) from exc

        self._logger.info("cors_options_resolved", key=self._key, defaults=False)
        return options

    def cors_handler(self) -> Callable[[ASGIApp], ASGIApp]:
        """Return a function wrapping a downstream ASGI app with the CORS policy."""
        options = self.cors_options()

        def handler(app: ASGIApp) -> ASGIApp:
            return CorsMiddleware.from_options(app, options, logger=self._logger)

        return handler

    def cors_middleware(self) -> Middleware:
        """Return the policy as a Starlette ``Middleware`` entry."""
        options = self.cors_options()
        return Middleware(CorsMiddleware.from_options, options=options, logger=self._logger)
