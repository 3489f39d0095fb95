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
"""Filter contract, path scoping and chain ordering.

A filter sees the request before the endpoint does and may either hand it on
through ``call_next`` or answer it itself.  Nothing in this module touches
Starlette; requests are read through ``request.url`` only.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Coroutine
from fnmatch import fnmatch
from typing import Any, Protocol, TypeVar, runtime_checkable

# (request) -> awaitable response of the rest of the chain
CallNext = Callable[..., Coroutine[Any, Any, Any]]

F = TypeVar("F", bound=type)

HIGHEST_PRECEDENCE: int = -(2**31)

_ORDER_ATTR = "__oozie_order__"


def order(value: int) -> Callable[[F], F]:
    """Place a filter class in the chain; smaller values run further out."""

    def decorator(cls: F) -> F:
        setattr(cls, _ORDER_ATTR, value)
        return cls

    return decorator


def get_order(cls: type) -> int:
    return getattr(cls, _ORDER_ATTR, 0)


def is_secure(request: Any) -> bool:
    """Return ``True`` when *request* arrived over ``https`` or ``wss``."""
    return request.url.scheme in ("https", "wss")


@runtime_checkable
class WebFilter(Protocol):
    """Anything the filter chain middleware can run."""

    async def do_filter(self, request: Any, call_next: CallNext) -> Any: ...

    def should_not_filter(self, request: Any) -> bool: ...


class OncePerRequestFilter(abc.ABC):
    """Base for filters scoped by glob patterns on the request path.

    ``url_patterns`` empty means every path.  ``exclude_patterns`` wins over
    ``url_patterns``.
    """

    url_patterns: list[str] = []
    exclude_patterns: list[str] = []

    def should_not_filter(self, request: Any) -> bool:
        path: str = request.url.path
        included = not self.url_patterns or any(fnmatch(path, p) for p in self.url_patterns)
        excluded = any(fnmatch(path, p) for p in self.exclude_patterns)
        return excluded or not included

    @abc.abstractmethod
    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        """Handle *request*; await ``call_next(request)`` to continue the chain."""
