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
"""CSRF guard core — stateless token-as-cookie admission decisions.

A browser that wants to perform a mutating call must echo the value of the
``OOZIE-CSRF-TOKEN`` cookie in a custom request header (``X-XSRF-HEADER`` by
default).  Nothing is stored server side: the cookie is the only record of
the token, and every decision is a pure function of the current request and
the guard configuration built once at startup.

Enforcement is skipped for non-browser clients (``User-Agent`` absent or not
matching any configured pattern) and for exempt methods.  A request that
arrives without a token is issued a new one, but it is still compared using
the token it *brought*, so a first-contact browser ``POST`` is rejected:
clients fetch a token with a safe method before mutating anything.
"""

from __future__ import annotations

import enum
import re
import secrets
import string
from collections.abc import Mapping
from dataclasses import dataclass, field

from oozieweb.kernel.exceptions import ConfigurationException

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
CSRF_COOKIE_NAME: str = "OOZIE-CSRF-TOKEN"
"""Name of the cookie that carries the CSRF token."""

HEADER_USER_AGENT: str = "User-Agent"

CUSTOM_HEADER_PARAM: str = "custom-header"
CUSTOM_METHODS_TO_IGNORE_PARAM: str = "methods-to-ignore"
BROWSER_USER_AGENT_PARAM: str = "browser-useragents-regex"

HEADER_DEFAULT: str = "X-XSRF-HEADER"
METHODS_TO_IGNORE_DEFAULT: str = "GET,OPTIONS,HEAD,TRACE"
BROWSER_USER_AGENTS_DEFAULT: str = "^Mozilla.*,^Opera.*"

TOKEN_LENGTH: int = 20
_TOKEN_ALPHABET = string.ascii_letters + string.digits

REJECTION_MESSAGE: str = "Missing Required Header for CSRF Vulnerability Protection"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
def parse_methods_to_ignore(value: str) -> frozenset[str]:
    """Split a comma-separated method list.  Entries are kept verbatim."""
    return frozenset(value.split(","))


def parse_browser_user_agents(value: str) -> tuple[re.Pattern[str], ...]:
    """Compile a comma-separated list of regexes.

    Raises:
        ConfigurationException: If any entry is not a valid regular expression.
    """
    patterns: list[re.Pattern[str]] = []
    for pattern_string in value.split(","):
        try:
            patterns.append(re.compile(pattern_string))
        except re.error as exc:
            raise ConfigurationException(
                f"Invalid browser user-agent pattern {pattern_string!r}: {exc}",
                code="CSRF_CONFIG",
                context={"param": BROWSER_USER_AGENT_PARAM, "pattern": pattern_string},
            ) from exc
    return tuple(patterns)


@dataclass(frozen=True)
class CsrfGuardConfig:
    """Immutable guard settings, built once and shared by all requests."""

    header_name: str = HEADER_DEFAULT
    methods_to_ignore: frozenset[str] = field(
        default_factory=lambda: parse_methods_to_ignore(METHODS_TO_IGNORE_DEFAULT)
    )
    browser_user_agents: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: parse_browser_user_agents(BROWSER_USER_AGENTS_DEFAULT)
    )

    @classmethod
    def from_init_params(cls, params: Mapping[str, str | None] | None = None) -> CsrfGuardConfig:
        """Build the config from filter init parameters.

        Recognised keys are ``custom-header``, ``methods-to-ignore`` and
        ``browser-useragents-regex``; a missing (or ``None``) value keeps the
        default.
        """
        params = params or {}
        header_name = params.get(CUSTOM_HEADER_PARAM)
        methods = params.get(CUSTOM_METHODS_TO_IGNORE_PARAM)
        agents = params.get(BROWSER_USER_AGENT_PARAM)
        return cls(
            header_name=header_name if header_name is not None else HEADER_DEFAULT,
            methods_to_ignore=parse_methods_to_ignore(
                methods if methods is not None else METHODS_TO_IGNORE_DEFAULT
            ),
            browser_user_agents=parse_browser_user_agents(
                agents if agents is not None else BROWSER_USER_AGENTS_DEFAULT
            ),
        )

    def is_browser(self, user_agent: str | None) -> bool:
        """Return ``True`` if *user_agent* fully matches any configured pattern."""
        if user_agent is None:
            return False
        return any(pattern.fullmatch(user_agent) for pattern in self.browser_user_agents)

    def requires_enforcement(self, method: str, user_agent: str | None) -> bool:
        return self.is_browser(user_agent) and method not in self.methods_to_ignore


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------
def generate_token() -> str:
    """Generate a new 20-character alphanumeric token from a secure source."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def load_token(cookies: Mapping[str, str]) -> str | None:
    """Return the token cookie value, or ``None`` when it is absent or empty."""
    token = cookies.get(CSRF_COOKIE_NAME)
    if not token:
        return None
    return token


def _tokens_equal(expected: str, actual: str) -> bool:
    """Timing-safe comparison; bytes so that non-ASCII header values never raise."""
    return secrets.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------
class CsrfAction(enum.Enum):
    FORWARD = "forward"
    REJECT = "reject"


@dataclass(frozen=True)
class CsrfDecision:
    """Outcome for one request.

    ``new_token`` is set whenever the request carried no usable token; it must
    be attached to the response whatever the action.
    """

    action: CsrfAction
    new_token: str | None = None

    @property
    def allowed(self) -> bool:
        return self.action is CsrfAction.FORWARD


def decide(
    config: CsrfGuardConfig,
    *,
    cookie_token: str | None,
    header_token: str | None,
    method: str,
    user_agent: str | None,
) -> CsrfDecision:
    """Decide whether to forward or reject a request.

    Args:
        config: Guard settings.
        cookie_token: Value of the ``OOZIE-CSRF-TOKEN`` cookie, if any.
        header_token: Value of the configured custom header, if any.
        method: HTTP method, compared case-sensitively with the exempt set.
        user_agent: ``User-Agent`` header, or ``None`` if there isn't one.

    Returns:
        The action to take and the token to issue, if one was created.
    """
    existing = cookie_token or None
    new_token = generate_token() if existing is None else None

    if not config.requires_enforcement(method, user_agent):
        return CsrfDecision(CsrfAction.FORWARD, new_token)

    # The token brought by the request is what counts, never the one just issued.
    if existing is not None and header_token is not None and _tokens_equal(existing, header_token):
        return CsrfDecision(CsrfAction.FORWARD, new_token)
    return CsrfDecision(CsrfAction.REJECT, new_token)
