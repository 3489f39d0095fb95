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
"""Tests for RestCsrfPreventionFilter."""

from __future__ import annotations

import re
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient

from oozieweb.core.config import Config
from oozieweb.kernel.exceptions import ConfigurationException
from oozieweb.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from oozieweb.web.adapters.starlette.filters.csrf_filter import (
    RestCsrfPreventionFilter,
    clear_token,
    save_token,
)
from oozieweb.web.csrf import CSRF_COOKIE_NAME, REJECTION_MESSAGE

BROWSER = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 Safari/605.1.15"
TOKEN = "abc123DEF456ghi789JK"

_TOKEN_RE = re.compile(rf"{CSRF_COOKIE_NAME}=([A-Za-z0-9]+)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_request(
    method: str = "GET",
    path: str = "/oozie/v2/jobs",
    scheme: str = "http",
    cookies: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> SimpleNamespace:
    """Build a lightweight mock request compatible with the filter."""
    return SimpleNamespace(
        method=method,
        url=SimpleNamespace(path=path, scheme=scheme),
        cookies=cookies or {},
        headers=headers or {},
    )


def _issued_token(response: Response) -> str | None:
    match = _TOKEN_RE.search(response.headers.get("set-cookie", ""))
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# do_filter
# ---------------------------------------------------------------------------


class TestRestCsrfPreventionFilter:
    @pytest.mark.asyncio
    async def test_missing_cookie_sets_session_cookie(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request()
        response = Response(content="ok", status_code=200)
        call_next = AsyncMock(return_value=response)

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_awaited_once_with(request)
        assert result is response
        cookie_header = result.headers["set-cookie"]
        token = _issued_token(result)
        assert token is not None and len(token) == 20
        assert "Max-Age" not in cookie_header
        assert "Secure" not in cookie_header

    @pytest.mark.asyncio
    async def test_secure_request_gets_secure_cookie(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(scheme="https")
        call_next = AsyncMock(return_value=Response(content="ok"))

        result = await csrf_filter.do_filter(request, call_next)

        assert "Secure" in result.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_existing_cookie_get_forwards_unchanged(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(method="GET", cookies={CSRF_COOKIE_NAME: TOKEN}, headers={"User-Agent": BROWSER})
        response = Response(content="ok")
        call_next = AsyncMock(return_value=response)

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_awaited_once_with(request)
        assert result is response
        assert "set-cookie" not in result.headers

    @pytest.mark.asyncio
    async def test_no_user_agent_post_forwards(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(method="POST", cookies={CSRF_COOKIE_NAME: TOKEN})
        call_next = AsyncMock(return_value=Response(content="ok"))

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_awaited_once_with(request)
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_browser_post_with_matching_header_forwards(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(
            method="POST",
            cookies={CSRF_COOKIE_NAME: TOKEN},
            headers={"User-Agent": BROWSER, "X-XSRF-HEADER": TOKEN},
        )
        response = Response(content="created", status_code=201)
        call_next = AsyncMock(return_value=response)

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_awaited_once_with(request)
        assert result is response

    @pytest.mark.asyncio
    async def test_browser_post_without_header_rejected(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(method="POST", cookies={CSRF_COOKIE_NAME: TOKEN}, headers={"User-Agent": BROWSER})
        call_next = AsyncMock()

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_not_awaited()
        assert isinstance(result, PlainTextResponse)
        assert result.status_code == 400
        assert result.body == REJECTION_MESSAGE.encode()
        assert "set-cookie" not in result.headers

    @pytest.mark.asyncio
    async def test_browser_put_with_wrong_header_rejected(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(
            method="PUT",
            cookies={CSRF_COOKIE_NAME: TOKEN},
            headers={"User-Agent": BROWSER, "X-XSRF-HEADER": "not-the-token"},
        )
        call_next = AsyncMock()

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_not_awaited()
        assert result.status_code == 400

    @pytest.mark.asyncio
    async def test_first_contact_post_rejected_with_new_cookie(self) -> None:
        csrf_filter = RestCsrfPreventionFilter()
        request = _make_request(method="POST", headers={"User-Agent": "Mozilla/5.0"})
        call_next = AsyncMock()

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_not_awaited()
        assert result.status_code == 400
        assert _issued_token(result) is not None

    @pytest.mark.asyncio
    async def test_custom_header_name(self) -> None:
        csrf_filter = RestCsrfPreventionFilter({"custom-header": "X-Oozie-Csrf"})
        request = _make_request(
            method="POST",
            cookies={CSRF_COOKIE_NAME: TOKEN},
            headers={"User-Agent": BROWSER, "X-Oozie-Csrf": TOKEN},
        )
        call_next = AsyncMock(return_value=Response(content="ok"))

        result = await csrf_filter.do_filter(request, call_next)

        call_next.assert_awaited_once()
        assert result.status_code == 200
        assert csrf_filter.header_name == "X-Oozie-Csrf"

    def test_bad_regex_fails_construction(self) -> None:
        with pytest.raises(ConfigurationException):
            RestCsrfPreventionFilter({"browser-useragents-regex": "*Mozilla"})


class TestFromConfig:
    def test_reads_csrf_section(self) -> None:
        config = Config(
            {
                "oozie": {
                    "servlets": {
                        "csrf": {
                            "enabled": True,
                            "custom-header": "X-Custom",
                            "methods-to-ignore": "GET,HEAD",
                            "browser-useragents-regex": "^Mozilla.*",
                        }
                    }
                }
            }
        )
        csrf_filter = RestCsrfPreventionFilter.from_config(config)
        assert csrf_filter.header_name == "X-Custom"
        assert csrf_filter.config.methods_to_ignore == frozenset({"GET", "HEAD"})
        assert not csrf_filter.config.is_browser("Opera/9.80")

    def test_empty_config_uses_defaults(self) -> None:
        csrf_filter = RestCsrfPreventionFilter.from_config(Config({}))
        assert csrf_filter.header_name == "X-XSRF-HEADER"

    def test_environment_overrides_section(self, monkeypatch) -> None:
        monkeypatch.setenv("OOZIE_SERVLETS_CSRF_CUSTOM_HEADER", "X-Env")
        config = Config({"oozie": {"servlets": {"csrf": {"custom-header": "X-File"}}}})
        assert RestCsrfPreventionFilter.from_config(config).header_name == "X-Env"

    def test_placeholders_are_resolved(self, monkeypatch) -> None:
        monkeypatch.setenv("CSRF_HDR", "X-From-Placeholder")
        config = Config({"oozie": {"servlets": {"csrf": {"custom-header": "${CSRF_HDR}"}}}})
        assert RestCsrfPreventionFilter.from_config(config).header_name == "X-From-Placeholder"

    def test_yaml_lists_are_joined(self) -> None:
        config = Config(
            {
                "oozie": {
                    "servlets": {
                        "csrf": {
                            "methods-to-ignore": ["GET", "HEAD"],
                            "browser-useragents-regex": ["^Mozilla.*", "^curl.*"],
                        }
                    }
                }
            }
        )
        csrf_filter = RestCsrfPreventionFilter.from_config(config)
        assert csrf_filter.config.methods_to_ignore == frozenset({"GET", "HEAD"})
        assert csrf_filter.config.is_browser("curl/8.4.0")

    def test_non_string_value_is_rejected(self) -> None:
        config = Config({"oozie": {"servlets": {"csrf": {"custom-header": 42}}}})
        with pytest.raises(ConfigurationException) as exc_info:
            RestCsrfPreventionFilter.from_config(config)
        assert exc_info.value.code == "CSRF_CONFIG"
        assert exc_info.value.context["param"] == "custom-header"


class TestCookieHelpers:
    def test_save_token(self) -> None:
        response = Response()
        save_token(response, TOKEN, secure=True)
        header = response.headers["set-cookie"]
        assert f"{CSRF_COOKIE_NAME}={TOKEN}" in header
        assert "Secure" in header
        assert "Max-Age" not in header

    def test_clear_token(self) -> None:
        response = Response()
        clear_token(response, secure=False)
        header = response.headers["set-cookie"]
        assert header.startswith(f"{CSRF_COOKIE_NAME}=")
        assert _issued_token(response) is None
        assert "Max-Age=0" in header


# ---------------------------------------------------------------------------
# Through the filter chain
# ---------------------------------------------------------------------------

async def _jobs(request: Request) -> PlainTextResponse:
    return PlainTextResponse("jobs")


def _make_app() -> Starlette:
    return Starlette(
        routes=[Route("/v2/jobs", _jobs, methods=["GET", "POST"])],
        middleware=[Middleware(WebFilterChainMiddleware, filters=[RestCsrfPreventionFilter()])],
    )


class TestCsrfFilterChain:
    def test_non_browser_client_is_never_blocked(self) -> None:
        client = TestClient(_make_app())
        resp = client.post("/v2/jobs", headers={"User-Agent": "curl/8.4.0"})
        assert resp.status_code == 200
        assert resp.text == "jobs"

    def test_first_contact_browser_post(self) -> None:
        client = TestClient(_make_app())
        resp = client.post("/v2/jobs", headers={"User-Agent": "Mozilla/5.0"})
        assert resp.status_code == 400
        assert resp.text == REJECTION_MESSAGE
        assert CSRF_COOKIE_NAME in resp.headers["set-cookie"]

    def test_fetch_token_then_post(self) -> None:
        app = _make_app()
        first = TestClient(app).get("/v2/jobs", headers={"User-Agent": BROWSER})
        assert first.status_code == 200
        token = first.cookies[CSRF_COOKIE_NAME]
        assert len(token) == 20

        client = TestClient(app, cookies={CSRF_COOKIE_NAME: token})
        resp = client.post("/v2/jobs", headers={"User-Agent": BROWSER, "X-XSRF-HEADER": token})
        assert resp.status_code == 200
        assert "set-cookie" not in resp.headers

    def test_echoing_wrong_token_is_rejected(self) -> None:
        client = TestClient(_make_app(), cookies={CSRF_COOKIE_NAME: TOKEN})
        resp = client.post("/v2/jobs", headers={"User-Agent": BROWSER, "X-XSRF-HEADER": TOKEN[::-1]})
        assert resp.status_code == 400
