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
"""oozie-web application factory built on Starlette."""

from __future__ import annotations

from collections.abc import Sequence

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute

from oozieweb.core.config import Config
from oozieweb.logging import LoggingPort, StructlogAdapter
from oozieweb.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from oozieweb.web.adapters.starlette.filters import (
    CacheControlFilter,
    HstsFilter,
    ResponseHeaderFilter,
    RestCsrfPreventionFilter,
)
from oozieweb.web.filters import WebFilter, get_order


def default_filters(config: Config) -> list[WebFilter]:
    """Build the configured filters, sorted by ``@order``.

    - HSTS and response-header filters are always installed (each honours its
      own enable flags).
    - ``CacheControlFilter`` is added when
      ``oozie.servlets.cache-control.url-patterns`` lists any pattern.
    - ``RestCsrfPreventionFilter`` is added when ``oozie.servlets.csrf.enabled``
      is true.
    """
    filters: list[WebFilter] = [
        HstsFilter.from_config(config),
        ResponseHeaderFilter.from_config(config),
    ]

    cache_patterns = config.get("oozie.servlets.cache-control.url-patterns") or []
    if isinstance(cache_patterns, str):
        cache_patterns = [p for p in cache_patterns.split(",") if p]
    if cache_patterns:
        filters.append(CacheControlFilter(cache_patterns))

    csrf_enabled = config.get("oozie.servlets.csrf.enabled", False)
    if isinstance(csrf_enabled, str):
        csrf_enabled = csrf_enabled.lower() in ("true", "1", "yes")
    if csrf_enabled:
        filters.append(RestCsrfPreventionFilter.from_config(config))

    filters.sort(key=lambda f: get_order(type(f)))
    return filters


def create_app(
    config: Config | None = None,
    routes: Sequence[BaseRoute] = (),
    extra_filters: Sequence[WebFilter] = (),
    debug: bool = False,
    logging_port: LoggingPort | None = None,
) -> Starlette:
    """Create a Starlette application wrapped in the oozie-web filter chain.

    Logging is configured from ``oozie.logging`` first, with *logging_port*
    or a :class:`StructlogAdapter`, so filter initialisation is logged with
    the configured levels.
    """
    config = config or Config({})
    (logging_port or StructlogAdapter()).configure(config)

    filters = default_filters(config)
    filters.extend(extra_filters)
    filters.sort(key=lambda f: get_order(type(f)))

    return Starlette(
        debug=debug,
        routes=list(routes),
        middleware=[Middleware(WebFilterChainMiddleware, filters=filters)],
    )
