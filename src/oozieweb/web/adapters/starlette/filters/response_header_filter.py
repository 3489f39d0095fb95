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
"""ResponseHeaderFilter: configurable XSS, content-type sniffing and cache headers."""

from __future__ import annotations

from typing import Any, cast

import structlog
from starlette.responses import Response

from oozieweb.core.config import Config
from oozieweb.web.filters import HIGHEST_PRECEDENCE, CallNext, OncePerRequestFilter, order
from oozieweb.web.response_headers import (
    CACHE_CONTROL_HEADER,
    CACHE_CONTROL_VALUE,
    PRAGMA_HEADER,
    PRAGMA_VALUE,
    X_CONTENT_TYPE_HEADER,
    X_CONTENT_TYPE_VALUE,
    XSS_HEADER,
    XSS_VALUE,
    ResponseHeaderProperties,
)

logger = structlog.get_logger("oozieweb.web.headers")


@order(HIGHEST_PRECEDENCE + 200)
class ResponseHeaderFilter(OncePerRequestFilter):
    """Adds each hardening header whose flag is on in :class:`ResponseHeaderProperties`.

    Headers act as defaults: whatever the endpoint set itself is kept.
    """

    def __init__(self, properties: ResponseHeaderProperties | None = None) -> None:
        self._properties = properties or ResponseHeaderProperties()
        self._defaults: list[tuple[str, str]] = []
        if self._properties.xss_protection:
            self._defaults.append((XSS_HEADER, XSS_VALUE))
        if self._properties.content_type_options:
            self._defaults.append((X_CONTENT_TYPE_HEADER, X_CONTENT_TYPE_VALUE))
        if self._properties.cache_control:
            self._defaults.append((CACHE_CONTROL_HEADER, CACHE_CONTROL_VALUE))
            self._defaults.append((PRAGMA_HEADER, PRAGMA_VALUE))
        logger.info("response_header_filter_initialized", headers=[name for name, _ in self._defaults])

    @classmethod
    def from_config(cls, config: Config) -> ResponseHeaderFilter:
        return cls(config.bind(ResponseHeaderProperties))

    async def do_filter(self, request: Any, call_next: CallNext) -> Response:
        response = cast(Response, await call_next(request))
        for name, value in self._defaults:
            response.headers.setdefault(name, value)
        return response
