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
"""Layered configuration: bundled defaults, YAML/TOML files, ``OOZIE_*`` env vars.

Keys use dot notation (``oozie.servlets.hsts.enabled``).  Filters read their
settings once, at construction time; nothing here is consulted per request.
Every read, including :meth:`Config.bind`, goes through :meth:`Config.get`,
so environment overrides and ``${...}`` placeholders apply uniformly.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]

from oozieweb.kernel.exceptions import ConfigurationException

T = TypeVar("T")

DEFAULTS_FILE = "oozie-defaults.yaml"

_ENV_PREFIX = "OOZIE_"
_SUFFIXES = (".yaml", ".toml")
_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})

_CONFIG_PROPERTIES_ATTR = "__oozie_config_prefix__"


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass as bindable with :meth:`Config.bind` under *prefix*.

    Usage:
        @config_properties(prefix="oozie.servlets.hsts")
        @dataclass(frozen=True)
        class HstsProperties:
            enabled: bool = False
            max_age_seconds: int = 31536000
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with path.open("rb") as f:
            return tomllib.load(f)
    with path.open() as f:
        return yaml.safe_load(f) or {}


def _read_bundled_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("oozieweb.resources").joinpath(DEFAULTS_FILE)
    return yaml.safe_load(resource.read_text(encoding="utf-8")) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _coerce(value: Any, target: Any, key: str) -> Any:
    """Convert a string read from YAML or the environment to *target*."""
    if not isinstance(value, str) or target in (None, str):
        return value
    if target is bool:
        return value.strip().lower() in _TRUE_STRINGS
    if target in (int, float):
        try:
            return target(value)
        except ValueError as exc:
            raise ConfigurationException(
                f"{key} expects {target.__name__}, got {value!r}",
                code="CONFIG_BIND",
                context={"key": key, "value": value},
            ) from exc
    return value


class Config:
    """Dot-notation view over merged configuration data.

    Priority (highest wins):
    1. Environment variables (``OOZIE_SECTION_KEY``, see :meth:`env_key`)
    2. Values from the dict or the merged files
    3. Dataclass defaults, when binding
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Files merged into this config, in merge order."""
        return list(self._sources)

    @classmethod
    def from_sources(
        cls,
        base_dir: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Merge configuration files found under *base_dir*.

        Merge order (later wins): the bundled ``oozie-defaults.yaml``, then
        ``config/oozie.*`` and ``oozie.*``, then the same two locations for
        ``oozie-<profile>.*`` per active profile.  YAML and TOML are both read.
        """
        base_dir = Path(base_dir)
        config = cls()
        if load_defaults:
            config._merge(_read_bundled_defaults(), f"{DEFAULTS_FILE} (bundled defaults)")

        stems = ["oozie"] + [f"oozie-{profile}" for profile in active_profiles or []]
        for stem in stems:
            for directory in (base_dir / "config", base_dir):
                for suffix in _SUFFIXES:
                    path = directory / f"{stem}{suffix}"
                    if path.is_file():
                        config._merge(_read_file(path), str(path))
        return config

    def _merge(self, data: dict[str, Any], source: str) -> None:
        self._data = _deep_merge(self._data, data)
        self._sources.append(source)

    @staticmethod
    def env_key(key: str) -> str:
        """Environment variable consulted for *key*: ``oozie.a.b-c`` -> ``OOZIE_A_B_C``."""
        base = key.removeprefix("oozie.")
        return _ENV_PREFIX + base.upper().replace(".", "_").replace("-", "_")

    def get(self, key: str, default: Any = None) -> Any:
        """Value for a dot-notation *key*, or *default*.

        An ``OOZIE_*`` environment variable for the key wins over file data.
        In string values, ``${NAME}`` is taken from the environment or from
        another config key, and ``${NAME:fallback}`` supplies a fallback.
        """
        env_val = os.environ.get(self.env_key(key))
        if env_val is not None:
            return env_val

        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._expand(value, 0)
        return value

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _expand(self, value: str, depth: int) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references."
            )

        def _replace(match: re.Match[str]) -> str:
            ref, has_fallback, fallback = match.group(1).partition(":")
            env_val = os.environ.get(ref)
            if env_val is not None:
                return env_val
            found = self._lookup(ref)
            if found is not None:
                text = str(found)
                return self._expand(text, depth + 1) if "${" in text else text
            if has_fallback:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{match.group(1)}}}': not found in environment or config")

        return _PLACEHOLDER_RE.sub(_replace, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Raw mapping stored under *prefix*; empty when absent or not a mapping."""
        node = self._lookup(prefix)
        return dict(node) if isinstance(node, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Instantiate a ``@config_properties`` dataclass from this config.

        Each field is read with :meth:`get` under the class prefix; fields
        with no value keep their dataclass default.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        hints = get_type_hints(config_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            key = f"{prefix}.{field.name}"
            value = self.get(key)
            if value is not None:
                kwargs[field.name] = _coerce(value, hints.get(field.name), key)
        return config_cls(**kwargs)
