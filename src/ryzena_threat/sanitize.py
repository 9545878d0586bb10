# Copyright (c) 2026 John Earle
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

"""
HTML body sanitization.

Rewrites every occurrence of a blocked URL in an HTML body:

    href="<url>"  ->  href="#" data-blocked-url="<url>" title="Blocked for security"
    src="<url>"   ->  src="" data-blocked-url="<url>" alt="Blocked content"
    <url>         ->  [URL BLOCKED FOR SECURITY]

The attribute name matches case-insensitively; the URL itself matches
exactly. The plain-text pass also masks the URL inside the
``data-blocked-url`` attribute written by the first two passes, so the
output never contains a blocked URL verbatim.
"""
import re

BLOCKED_MARKER = "[URL BLOCKED FOR SECURITY]"


def _attribute_pattern(attribute: str, url: str) -> re.Pattern:
    # (?i:...) scopes case-insensitivity to the attribute name
    return re.compile(f"(?i:{attribute})=[\"']{re.escape(url)}[\"']")


def sanitize_html(html: str, blocked_urls: list[str]) -> str:
    """Return ``html`` with every blocked URL neutralized.

    URLs are processed longest first so a URL that is a prefix of another
    cannot leave a fragment of the longer one behind.
    """
    if not html or not blocked_urls:
        return html

    sanitized = html
    for url in sorted({u for u in blocked_urls if u}, key=lambda u: (-len(u), u)):
        sanitized = _attribute_pattern("href", url).sub(
            lambda _m, u=url: f'href="#" data-blocked-url="{u}" title="Blocked for security"',
            sanitized,
        )
        sanitized = _attribute_pattern("src", url).sub(
            lambda _m, u=url: f'src="" data-blocked-url="{u}" alt="Blocked content"',
            sanitized,
        )
        sanitized = sanitized.replace(url, BLOCKED_MARKER)

    return sanitized
