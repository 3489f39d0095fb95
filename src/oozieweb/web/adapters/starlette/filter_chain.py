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
"""WebFilterChainMiddleware: runs the oozie-web filters around a Starlette app."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, cast

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from oozieweb.web.filters import CallNext, WebFilter


class _ResponseRecorder:
    """ASGI ``send`` callable buffering a single HTTP response."""

    def __init__(self) -> None:
        self.status = 200
        self.headers: list[tuple[bytes, bytes]] = []
        self.body = bytearray()

    async def __call__(self, message: Message) -> None:
        kind = message["type"]
        if kind == "http.response.start":
            self.status = message["status"]
            self.headers = list(message.get("headers", []))
        elif kind == "http.response.body":
            self.body += message.get("body", b"")
        elif kind == "http.response.pathsend":
            self.body += Path(message["path"]).read_bytes()

    def to_response(self) -> Response:
        response = Response(content=bytes(self.body), status_code=self.status)
        response.raw_headers[:] = self.headers
        return response


class WebFilterChainMiddleware:
    """Pure ASGI middleware executing *filters* in order around the wrapped app.

    The chain is linked once at construction.  A filter whose
    ``should_not_filter`` returns ``True`` is stepped over; a filter that
    answers without awaiting ``call_next`` keeps the request from reaching the
    app.  Non-HTTP scopes bypass the chain.
    """

    def __init__(self, app: ASGIApp, filters: Sequence[WebFilter] = ()) -> None:
        self.app = app
        chain: CallNext = self._downstream
        for web_filter in reversed(filters):
            chain = _link(web_filter, chain)
        self._chain = chain

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        response = cast(Response, await self._chain(Request(scope, receive, send)))
        await response(scope, receive, send)

    async def _downstream(self, request: Request) -> Response:
        recorder = _ResponseRecorder()
        await self.app(request.scope, request.receive, recorder)
        return recorder.to_response()


def _link(web_filter: WebFilter, call_next: CallNext) -> CallNext:
    async def _step(request: Any) -> Any:
        if web_filter.should_not_filter(request):
            return await call_next(request)
        return await web_filter.do_filter(request, call_next)

    return _step
