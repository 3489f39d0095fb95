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
"""HstsFilter: Strict-Transport-Security on responses sent over TLS."""

from __future__ import annotations

from typing import Any, cast

import structlog
from starlette.responses import Response

from oozieweb.core.config import Config
from oozieweb.web.filters import HIGHEST_PRECEDENCE, CallNext, OncePerRequestFilter, is_secure, order
from oozieweb.web.response_headers import STRICT_TRANSPORT_SECURITY, HstsProperties

logger = structlog.get_logger("oozieweb.web.headers")


@order(HIGHEST_PRECEDENCE + 100)
class HstsFilter(OncePerRequestFilter):
    """Adds ``Strict-Transport-Security: max-age=<n>`` when enabled and the request is secure.

    Plain-HTTP responses never carry the header.  A value already set by the
    endpoint is left alone.
    """

    def __init__(self, properties: HstsProperties | None = None) -> None:
        self._properties = properties or HstsProperties()
        logger.info(
            "hsts_filter_initialized",
            enabled=self._properties.enabled,
            max_age=self._properties.max_age_seconds,
        )

    @classmethod
    def from_config(cls, config: Config) -> HstsFilter:
        return cls(config.bind(HstsProperties))

    async def do_filter(self, request: Any, call_next: CallNext) -> Response:
        response = cast(Response, await call_next(request))
        if self._properties.enabled and is_secure(request):
            response.headers.setdefault(
                STRICT_TRANSPORT_SECURITY, f"max-age={self._properties.max_age_seconds}"
            )
        return response
