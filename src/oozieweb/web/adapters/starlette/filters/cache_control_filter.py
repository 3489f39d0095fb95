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
"""CacheControlFilter: forbids caching of the responses it is scoped to."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, cast

import structlog
from starlette.responses import Response

from oozieweb.web.filters import HIGHEST_PRECEDENCE, CallNext, OncePerRequestFilter, order
from oozieweb.web.response_headers import (
    CACHE_CONTROL_HEADER,
    CACHE_CONTROL_VALUE,
    PRAGMA_HEADER,
    PRAGMA_VALUE,
)

logger = structlog.get_logger("oozieweb.web.headers")


@order(HIGHEST_PRECEDENCE + 250)
class CacheControlFilter(OncePerRequestFilter):
    """Sets ``Cache-Control`` and ``Pragma: no-cache`` unless the endpoint already did."""

    def __init__(self, url_patterns: Sequence[str] = ()) -> None:
        self.url_patterns = list(url_patterns)
        logger.info("cache_control_filter_initialized", url_patterns=self.url_patterns)

    async def do_filter(self, request: Any, call_next: CallNext) -> Response:
        response = cast(Response, await call_next(request))
        response.headers.setdefault(CACHE_CONTROL_HEADER, CACHE_CONTROL_VALUE)
        response.headers.setdefault(PRAGMA_HEADER, PRAGMA_VALUE)
        return response
