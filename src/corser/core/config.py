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
"""Key-value configuration backed by YAML/TOML files, dicts, and env vars."""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Protocol, cast, runtime_checkable

import yaml  # type: ignore[import-untyped]

from corser.kernel.exceptions import ConfigFetchException

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

DEFAULT_CONFIG_FILE_ENV = "CORSER_CONFIG_FILE"


@runtime_checkable
class StringMapGetter(Protocol):
    """Anything able to return a named configuration section as a flat mapping."""

    def get_string_map(self, key: str) -> dict[str, Any]: ...


class Config:
    """Hierarchical configuration with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (CORSER_SECTION_KEY format)
    2. Configuration dict / YAML / TOML file values
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """List of config file paths that were loaded."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the raw configuration data."""
        return dict(self._data)

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Load configuration from a YAML or TOML file.

        A missing file yields an empty configuration.
        """
        path = Path(path)
        data: dict[str, Any] = {}
        sources: list[str] = []

        if path.exists():
            data = cls._load_config_data(path)
            sources.append(str(path))

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @classmethod
    def from_env(cls, var: str = DEFAULT_CONFIG_FILE_ENV) -> Config:
        """Load the configuration file named by the environment variable *var*."""
        path = os.environ.get(var)
        if not path:
            raise ConfigFetchException(
                f"Environment variable '{var}' is not set; cannot locate the config file",
                context={"env": var},
            )
        return cls.from_file(path)

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        """Load config data from a YAML or TOML file."""
        try:
            if path.suffix == ".toml":
                with open(path, "rb") as f:
                    return tomllib.load(f) or {}
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
            raise ConfigFetchException(f"Failed to load config file '{path}'", context={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise ConfigFetchException(
                f"Config file '{path}' must contain a mapping at the top level", context={"path": str(path)}
            )
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        String values containing ``${...}`` placeholders are resolved:
        - ``${ENV_VAR}`` — resolved from environment variables
        - ``${config.key}`` — resolved from other config values
        - ``${key:default}`` — uses default if key/env not found
        """
        env_val = os.environ.get(_env_key(key))
        if env_val is not None:
            return env_val

        current = self._walk(key)
        if current is None:
            return default

        if isinstance(current, str) and "${" in current:
            return self._resolve_placeholders(current)

        return current

    def _walk(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    def _resolve_placeholders(self, value: str, _depth: int = 0) -> str:
        """Resolve ``${...}`` placeholders in a string value.

        Guards against circular references with a max recursion depth.
        """
        if _depth > 10:
            raise ValueError(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references."
            )

        def _replace(match: re.Match[str]) -> str:
            inner = match.group(1)

            if ":" in inner:
                ref_key, default_val = inner.split(":", 1)
            else:
                ref_key, default_val = inner, None

            env_val = os.environ.get(ref_key)
            if env_val is not None:
                return env_val

            current = self._walk(ref_key)
            if current is not None:
                resolved = str(current)
                if "${" in resolved:
                    resolved = self._resolve_placeholders(resolved, _depth + 1)
                return resolved

            if default_val is not None:
                return cast(str, default_val)

            raise ValueError(f"Cannot resolve placeholder '${{{inner}}}': not found in environment or config")

        return _PLACEHOLDER_RE.sub(_replace, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix as a dict, or ``{}`` when absent."""
        current = self._walk(prefix)
        return current if isinstance(current, dict) else {}

    def get_string_map(self, key: str) -> dict[str, Any]:
        """Return the section under *key* as a flat mapping with string keys.

        A missing or empty key yields ``{}``. A value that is present but is
        not a mapping is malformed data and raises :class:`ConfigFetchException`.

        Each entry already in the section can be overridden by its
        ``CORSER_<KEY>_<ENTRY>`` environment variable, parsed as YAML so
        ``true``, ``3600`` and ``[GET, POST]`` keep their types. Overrides
        cannot add entries the section does not have.
        """
        raw = self._walk(key)
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigFetchException(
                f"Config key '{key}' holds a {type(raw).__name__}, expected a mapping",
                context={"key": key},
            )
        try:
            return {str(k): self._resolve_value(self._env_override(f"{key}.{k}", v)) for k, v in raw.items()}
        except ValueError as exc:
            raise ConfigFetchException(f"Failed to resolve config key '{key}'", context={"key": key}) from exc

    @staticmethod
    def _env_override(key: str, value: Any) -> Any:
        env_val = os.environ.get(_env_key(key))
        if env_val is None:
            return value
        try:
            return yaml.safe_load(env_val)
        except yaml.YAMLError:
            return env_val

    def _resolve_value(self, value: Any) -> Any:
        if isinstance(value, str) and "${" in value:
            return self._resolve_placeholders(value)
        if isinstance(value, list):
            return [self._resolve_value(v) for v in value]
        return value


def _env_key(key: str) -> str:
    # cors_options.max_age -> CORSER_CORS_OPTIONS_MAX_AGE
    return "CORSER_" + key.upper().replace(".", "_").replace("-", "_")
