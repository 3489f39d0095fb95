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
"""Configuration properties for the response-header filters."""

from __future__ import annotations

from dataclasses import dataclass

from oozieweb.core.config import config_properties

STRICT_TRANSPORT_SECURITY: str = "Strict-Transport-Security"
XSS_HEADER: str = "X-XSS-Protection"
XSS_VALUE: str = "1; mode=block"
X_CONTENT_TYPE_HEADER: str = "X-Content-Type-Options"
X_CONTENT_TYPE_VALUE: str = "nosniff"
CACHE_CONTROL_HEADER: str = "Cache-Control"
CACHE_CONTROL_VALUE: str = "no-store, no-cache, must-revalidate, post-check=0, pre-check=0"
PRAGMA_HEADER: str = "Pragma"
PRAGMA_VALUE: str = "no-cache"


@config_properties(prefix="oozie.servlets.hsts")
@dataclass(frozen=True)
class HstsProperties:
    """HTTP Strict Transport Security settings (oozie.servlets.hsts.*)."""

    enabled: bool = False
    max_age_seconds: int = 31536000


@config_properties(prefix="oozie.servlets.headers")
@dataclass(frozen=True)
class ResponseHeaderProperties:
    """Toggles for the hardening headers added to every response (oozie.servlets.headers.*)."""

    xss_protection: bool = True
    content_type_options: bool = True
    cache_control: bool = True
