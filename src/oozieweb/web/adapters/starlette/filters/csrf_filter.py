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
"""RestCsrfPreventionFilter — custom-header CSRF protection for REST calls.

Browsers (by ``User-Agent``) issuing non-exempt methods must echo the
``OOZIE-CSRF-TOKEN`` cookie value in the configured custom header
(``X-XSRF-HEADER`` by default).  Any other client passes through.  A request
without a token cookie is issued one, on the forwarded response and on the
rejection alike.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

import structlog
from starlette.responses import PlainTextResponse, Response

from oozieweb.core.config import Config
from oozieweb.kernel.exceptions import ConfigurationException
from oozieweb.web.csrf import (
    BROWSER_USER_AGENT_PARAM,
    CSRF_COOKIE_NAME,
    CUSTOM_HEADER_PARAM,
    HEADER_USER_AGENT,
    CUSTOM_METHODS_TO_IGNORE_PARAM,
    REJECTION_MESSAGE,
    CsrfGuardConfig,
    decide,
    load_token,
)
from oozieweb.web.filters import HIGHEST_PRECEDENCE, CallNext, OncePerRequestFilter, is_secure, order

logger = structlog.get_logger("oozieweb.web.csrf")

CSRF_CONFIG_PREFIX = "oozie.servlets.csrf"

_INIT_PARAM_NAMES = (CUSTOM_HEADER_PARAM, CUSTOM_METHODS_TO_IGNORE_PARAM, BROWSER_USER_AGENT_PARAM)


def save_token(response: Any, token: str, secure: bool) -> None:
    """Attach *token* as a session cookie (no ``Max-Age``)."""
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        max_age=None,
        secure=secure,
        samesite=None,
    )
    logger.debug("csrf_token_issued", cookie=CSRF_COOKIE_NAME)


def clear_token(response: Any, secure: bool) -> None:
    """Expire the token cookie on the client (empty value, ``Max-Age=0``)."""
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value="",
        max_age=0,
        secure=secure,
        samesite=None,
    )


@order(HIGHEST_PRECEDENCE + 400)
class RestCsrfPreventionFilter(OncePerRequestFilter):
    """Filter enforcing the custom-header CSRF check.

    Runs after the response-header filters so that rejections still carry
    the hardening headers.
    """

    def __init__(self, init_params: Mapping[str, str | None] | None = None) -> None:
        self._config = CsrfGuardConfig.from_init_params(init_params)
        logger.info(
            "csrf_filter_initialized",
            header_name=self._config.header_name,
            methods_to_ignore=sorted(self._config.methods_to_ignore),
            browser_user_agents=[p.pattern for p in self._config.browser_user_agents],
        )

    @classmethod
    def from_config(cls, config: Config) -> RestCsrfPreventionFilter:
        """Build the filter from the ``oozie.servlets.csrf`` keys.

        Keys go through :meth:`Config.get`, so ``OOZIE_SERVLETS_CSRF_*``
        overrides and ``${...}`` placeholders apply.  YAML lists are joined
        with ``,``.
        """
        params: dict[str, str] = {}
        for name in _INIT_PARAM_NAMES:
            key = f"{CSRF_CONFIG_PREFIX}.{name}"
            value = config.get(key)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = ",".join(str(item) for item in value)
            elif not isinstance(value, str):
                raise ConfigurationException(
                    f"{key} must be a string or a list of strings, got {type(value).__name__}",
                    code="CSRF_CONFIG",
                    context={"param": name, "value": value},
                )
            params[name] = value
        return cls(params)

    @property
    def config(self) -> CsrfGuardConfig:
        return self._config

    @property
    def header_name(self) -> str:
        return self._config.header_name

    async def do_filter(self, request: Any, call_next: CallNext) -> Response:
        decision = decide(
            self._config,
            cookie_token=load_token(request.cookies),
            header_token=request.headers.get(self._config.header_name),
            method=request.method,
            user_agent=request.headers.get(HEADER_USER_AGENT),
        )
        if decision.new_token is not None:
            logger.debug("csrf_token_missing", path=request.url.path)

        if decision.allowed:
            response = cast(Response, await call_next(request))
        else:
            logger.debug(
                "csrf_request_rejected",
                method=request.method,
                path=request.url.path,
                reason=REJECTION_MESSAGE,
            )
            response = PlainTextResponse(REJECTION_MESSAGE, status_code=400)

        if decision.new_token is not None:
            save_token(response, decision.new_token, is_secure(request))
        return response


