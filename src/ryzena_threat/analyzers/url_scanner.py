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
Analyzer: URL Risk

Scores every extracted URL on its own, with no network lookups. Each URL
gets a risk level (low / medium / high) and a human-readable reason.

What it checks:
- Raw IP addresses used as hosts (legitimate sites use domain names)
- Plain http instead of https
- Suspicious TLDs
- Redirect parameters and URL shorteners
- Unusually deep paths
- Phishing-style URL shapes (login-, verify-account, .php?, ...)

Hosts on the trusted list get a discount, so a normal link to a big
provider stays low risk even if it trips a heuristic or two.

One result per input URL, same order, nothing filtered. A URL that cannot
be parsed is treated as high risk.
"""
import ipaddress
import logging
import re
import time
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlsplit

from ryzena_threat.analyzers._base import BaseAnalyzer
from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.models import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    NormalizedEmail,
    URLFindings,
    URLScanResult,
)

logger = logging.getLogger(__name__)

# Score contributions
IP_HOST_SCORE = 0.6
NO_HTTPS_SCORE = 0.2
SUSPICIOUS_TLD_SCORE = 0.3
REDIRECT_SCORE = 0.25
DEEP_PATH_SCORE = 0.15
MALICIOUS_PATTERN_SCORE = 0.3  # per matching pattern
TRUSTED_DISCOUNT = 0.5

DEEP_PATH_THRESHOLD = 5

# Level cut-offs: score < MEDIUM -> low, < HIGH -> medium, else high
MEDIUM_CUTOFF = 0.3
HIGH_CUTOFF = 0.6

MALFORMED_REASON = "Invalid or malformed URL"
SCAN_ERROR_REASON = "Error scanning URL"
NO_ISSUES_REASON = "No issues detected"

# Schemes that are malformed without a host ("http://" alone)
HOST_REQUIRED_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})

# Regex to detect IPv4 addresses used as hostnames
IP_PATTERN = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')


@dataclass(frozen=True)
class ParsedURL:
    scheme: str
    hostname: str
    path: str


def parse_url(url: str) -> ParsedURL:
    """Split a URL into scheme / host / path.

    Schemes such as ``mailto:`` or ``tel:`` have no host; they parse with
    an empty ``hostname``. Network schemes (http, https, ftp, ws, wss)
    must name a host.

    Raises:
        ValueError: if the URL has no scheme, cannot be split, or is a
            network URL without a usable host.
    """
    if not isinstance(url, str):
        raise ValueError(f"URL must be a string, got {type(url).__name__}")
    parts = urlsplit(url.strip())
    hostname = parts.hostname or ""
    if not parts.scheme or any(c.isspace() for c in hostname):
        raise ValueError(f"Malformed URL: {url[:80]}")
    if not hostname and parts.scheme.lower() in HOST_REQUIRED_SCHEMES:
        raise ValueError(f"Malformed URL: {url[:80]}")
    return ParsedURL(
        scheme=parts.scheme.lower(),
        hostname=hostname.lower(),
        path=parts.path,
    )


@lru_cache(maxsize=32)
def _compile_patterns(patterns: tuple[str, ...]) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _is_ip_address(hostname: str) -> bool:
    if IP_PATTERN.match(hostname):
        return True
    try:
        return ipaddress.ip_address(hostname).version == 6
    except ValueError:
        return False


def _extract_tld(domain: str) -> str:
    parts = domain.split(".")
    return parts[-1].lower() if len(parts) > 1 else ""


def _path_depth(path: str) -> int:
    return len([segment for segment in path.split("/") if segment])


def is_trusted_domain(domain: str, config: ThreatConfig | None = None) -> bool:
    """Exact match, subdomain of a trusted entry, or an .edu / .gov host."""
    config = config if config is not None else get_threat_config()
    domain = domain.lower()
    trusted = {d.lower() for d in config.trusted_domains}
    if domain in trusted:
        return True
    if any(domain.endswith(f".{entry}") for entry in trusted):
        return True
    return domain.endswith(".edu") or domain.endswith(".gov")


def analyze_url(url: str, config: ThreatConfig | None = None) -> URLFindings:
    """Structural findings for one URL. Raises ValueError if unparsable."""
    config = config if config is not None else get_threat_config()
    parsed = parse_url(url)
    tld = _extract_tld(parsed.hostname)
    return URLFindings(
        is_https=parsed.scheme == "https",
        is_ip_based=_is_ip_address(parsed.hostname),
        domain=parsed.hostname,
        tld=tld,
        is_suspicious_tld=tld in config.url_suspicious_tlds,
        has_redirect_pattern=any(
            p.search(url) for p in _compile_patterns(tuple(config.redirect_patterns))
        ),
        path_depth=_path_depth(parsed.path),
    )


def _determine_risk(
    url: str, findings: URLFindings, config: ThreatConfig,
) -> tuple[str, str]:
    reasons = []
    score = 0.0

    if findings.is_ip_based:
        score += IP_HOST_SCORE
        reasons.append("IP-based URL")

    if not findings.is_https:
        score += NO_HTTPS_SCORE
        reasons.append("No HTTPS")

    if findings.is_suspicious_tld:
        score += SUSPICIOUS_TLD_SCORE
        reasons.append(f"Suspicious TLD (.{findings.tld})")

    if findings.has_redirect_pattern:
        score += REDIRECT_SCORE
        reasons.append("Redirect/shortener pattern")

    if findings.path_depth > DEEP_PATH_THRESHOLD:
        score += DEEP_PATH_SCORE
        reasons.append("Unusually deep URL path")

    matches = [
        p for p in _compile_patterns(tuple(config.malicious_patterns))
        if p.search(url)
    ]
    if matches:
        score += MALICIOUS_PATTERN_SCORE * len(matches)
        reasons.append("Suspicious URL pattern")

    if is_trusted_domain(findings.domain, config):
        score = max(0.0, score - TRUSTED_DISCOUNT)
        if reasons:
            reasons.append("(Trusted domain)")

    if score >= HIGH_CUTOFF:
        level = RISK_HIGH
    elif score >= MEDIUM_CUTOFF:
        level = RISK_MEDIUM
    else:
        level = RISK_LOW

    return level, ", ".join(reasons) if reasons else NO_ISSUES_REASON


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def scan_url(url: str, config: ThreatConfig | None = None) -> URLScanResult:
    """Risk verdict for a single URL."""
    config = config if config is not None else get_threat_config()
    try:
        findings = analyze_url(url, config)
    except ValueError:
        return URLScanResult(url=url, risk_level=RISK_HIGH, reason=MALFORMED_REASON)

    level, reason = _determine_risk(url, findings, config)
    return URLScanResult(url=url, risk_level=level, reason=reason, findings=findings)


def scan_urls(urls: list[str], config: ThreatConfig | None = None) -> list[URLScanResult]:
    """Scan every URL, one result per input in input order.

    A URL whose scan fails unexpectedly is reported as medium risk; the
    rest of the batch is unaffected.
    """
    config = config if config is not None else get_threat_config()
    t0 = time.monotonic()
    results = []

    for url in urls:
        try:
            results.append(scan_url(url, config))
        except Exception as exc:
            logger.warning("URL scan failed for %s: %s", str(url)[:80], exc)
            results.append(
                URLScanResult(url=url, risk_level=RISK_MEDIUM, reason=SCAN_ERROR_REASON)
            )

    high = sum(1 for r in results if r.risk_level == RISK_HIGH)
    medium = sum(1 for r in results if r.risk_level == RISK_MEDIUM)
    logger.info(
        "URL scan complete: total=%d high=%d medium=%d low=%d (%.1fms)",
        len(results), high, medium, len(results) - high - medium,
        (time.monotonic() - t0) * 1000,
    )
    return results


def has_high_risk_url(results: list[URLScanResult]) -> bool:
    return any(r.risk_level == RISK_HIGH for r in results)


def sanitize_url_for_display(url: str) -> str:
    """Replace a URL with a short warning placeholder for display."""
    return f"[BLOCKED: {url[:50]}...]"


class URLScanner(BaseAnalyzer):
    """Heuristic URL risk scoring."""

    name = "url_risk"
    description = "Scores URLs for IP hosts, missing HTTPS, bad TLDs, redirects and phishing patterns"
    order = 20

    def analyze(self, email: NormalizedEmail) -> list[URLScanResult]:
        return scan_urls(email.urls, self.config)
