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
"""Corser exception hierarchy.

All errors raised while loading a CORS policy derive from
:class:`CorserException`, so callers can decide in one place whether a
misconfiguration aborts startup or is recovered from.
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class CorserException(Exception):
    """Base exception for all Corser errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CONFIG_FETCH").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(CorserException):
    """The configuration source or its contents are unusable."""


class ConfigFetchException(ConfigurationException):
    """The configuration backend could not produce the requested section."""

    def __init__(self, message: str, code: str | None = "CONFIG_FETCH", context: dict | None = None) -> None:
        super().__init__(message, code=code, context=context)


class ConfigDecodeException(ConfigurationException):
    """A section was present but its values could not be mapped to typed fields."""

    def __init__(self, message: str, code: str | None = "CONFIG_DECODE", context: dict | None = None) -> None:
        super().__init__(message, code=code, context=context)
