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
"""CORS policy options and the fallback policy used when none is configured."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

DEFAULT_CONFIG_KEY = "cors_options"


class CorsOptions(BaseModel):
    """A set of options allowing cross-origin requests.

    Each field is read from the config key of the same name. Unknown keys are
    ignored; missing keys keep the zero value (empty tuple, ``False`` or ``0``).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # List of origins a cross-domain request can be executed from. "*" allows
    # every origin; an origin may contain one wildcard (http://*.domain.com).
    allowed_origins: tuple[str, ...] = ()

    # Methods the client may use with cross-domain requests.
    allowed_methods: tuple[str, ...] = ()

    # Non-simple headers the client may use. "*" allows all; "Origin" is
    # always appended when the middleware is built.
    allowed_headers: tuple[str, ...] = ()

    # Headers that are safe to expose to the API of a CORS API specification.
    exposed_headers: tuple[str, ...] = ()

    # Whether the request can include user credentials like cookies, HTTP
    # authentication or client side SSL certificates.
    allow_credentials: bool = False

    # How long (in seconds) the results of a preflight request can be cached.
    max_age: int = 0

    # Let downstream handlers also process OPTIONS preflight requests.
    options_passthrough: bool = False

    # Log every CORS decision to debug server side CORS issues.
    debug: bool = False


DEFAULT_OPTIONS = CorsOptions(
    allowed_origins=("*",),
    allowed_methods=("HEAD", "GET", "POST", "PUT", "PATCH", "DELETE"),
    allowed_headers=("*",),
    allow_credentials=False,
)
