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
"""Corser — CORS policy loaded from configuration, served as ASGI middleware."""

from corser.core.config import Config, StringMapGetter
from corser.cors import (
    DEFAULT_CONFIG_KEY,
    DEFAULT_OPTIONS,
    ConfigCorser,
    Corser,
    CorsMiddleware,
    CorsOptions,
)
from corser.kernel.exceptions import (
    ConfigDecodeException,
    ConfigFetchException,
    ConfigurationException,
    CorserException,
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "StringMapGetter",
    "ConfigCorser",
    "Corser",
    "CorsMiddleware",
    "CorsOptions",
    "DEFAULT_CONFIG_KEY",
    "DEFAULT_OPTIONS",
    "CorserException",
    "ConfigurationException",
    "ConfigFetchException",
    "ConfigDecodeException",
]
