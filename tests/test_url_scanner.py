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

"""Tests for the URL risk scanner."""
from unittest.mock import patch

import pytest

from ryzena_threat.analyzers import url_scanner
from ryzena_threat.analyzers.url_scanner import (
    URLScanner,
    has_high_risk_url,
    is_trusted_domain,
    parse_url,
    sanitize_url_for_display,
    scan_url,
    scan_urls,
)
from ryzena_threat.config import ThreatConfig
from ryzena_threat.models import NormalizedEmail, URLScanResult


class TestParseURL:

    def test_lowercases_host(self):
        parsed = parse_url("HTTPS://Docs.Example.COM/Path")
        assert parsed.scheme == "https"
        assert parsed.hostname == "docs.example.com"
        assert parsed.path == "/Path"

    @pytest.mark.parametrize("url,scheme", [
        ("mailto:support@example.com", "mailto"),
        ("tel:+15551234567", "tel"),
        ("javascript:void(0)", "javascript"),
    ])
    def test_hostless_schemes_parse(self, url, scheme):
        parsed = parse_url(url)
        assert parsed.scheme == scheme
        assert parsed.hostname == ""

    @pytest.mark.parametrize("url", [
        "not a url",
        "http://",
        "https:///path-only",
        "//example.com/no-scheme",
        "http://[::1",
        "",
    ])
    def test_malformed(self, url):
        with pytest.raises(ValueError):
            parse_url(url)


class TestScanURL:

    def setup_method(self):
        self.config = ThreatConfig()

    def test_clean_https(self):
        result = scan_url("https://example.com/about", self.config)
        assert result.risk_level == "low"
        assert result.reason == "No issues detected"
        assert result.findings.is_https is True
        assert result.findings.domain == "example.com"
        assert result.findings.tld == "com"
        assert result.findings.path_depth == 1

    def test_url_is_echoed_verbatim(self):
        url = "https://Example.com/About?x=1"
        assert scan_url(url, self.config).url == url

    def test_ip_based_http_is_high(self):
        result = scan_url("http://203.0.113.5/login", self.config)
        assert result.risk_level == "high"
        assert result.findings.is_ip_based is True
        assert result.reason.startswith("IP-based URL, No HTTPS")

    def test_ipv6_host(self):
        result = scan_url("https://[2001:db8::1]/", self.config)
        assert result.findings.is_ip_based is True
        assert result.risk_level == "high"

    def test_suspicious_tld_is_medium(self):
        result = scan_url("https://example.xyz/page", self.config)
        assert result.risk_level == "medium"
        assert result.reason == "Suspicious TLD (.xyz)"
        assert result.findings.is_suspicious_tld is True

    def test_shortener_alone_is_low(self):
        result = scan_url("https://bit.ly/abc", self.config)
        assert result.risk_level == "low"
        assert result.reason == "Redirect/shortener pattern"
        assert result.findings.has_redirect_pattern is True

    def test_shortener_over_http_is_medium(self):
        result = scan_url("http://bit.ly/abc", self.config)
        assert result.risk_level == "medium"
        assert result.reason == "No HTTPS, Redirect/shortener pattern"

    def test_redirect_parameter(self):
        result = scan_url("https://example.com/out?url=https://elsewhere.net", self.config)
        assert result.findings.has_redirect_pattern is True

    def test_deep_path(self):
        result = scan_url("https://example.com/a/b/c/d/e/f", self.config)
        assert result.findings.path_depth == 6
        assert result.reason == "Unusually deep URL path"
        assert result.risk_level == "low"

    def test_malicious_patterns_are_additive(self):
        result = scan_url("https://example.com/secure-login-verify-account", self.config)
        # secure-, login-, verify-account: 3 x 0.3
        assert result.risk_level == "high"
        assert result.reason == "Suspicious URL pattern"

    def test_single_malicious_pattern_is_medium(self):
        result = scan_url("https://example.com/reset-password", self.config)
        assert result.risk_level == "medium"

    def test_trusted_domain_with_no_issues(self):
        result = scan_url("https://docs.microsoft.com/x", self.config)
        assert result.risk_level == "low"
        assert result.reason == "No issues detected"

    def test_trusted_domain_discount(self):
        result = scan_url("http://github.com/login-help", self.config)
        assert result.risk_level == "low"
        assert result.reason == "No HTTPS, Suspicious URL pattern, (Trusted domain)"

    def test_discount_does_not_fully_clear_heavy_risk(self):
        result = scan_url("http://accounts.google.com/secure-login-now", self.config)
        # 0.2 + 0.6 - 0.5
        assert result.risk_level == "medium"

    @pytest.mark.parametrize("url", ["not a url", "http://", "https:///path-only"])
    def test_malformed_is_high(self, url):
        result = scan_url(url, self.config)
        assert result.risk_level == "high"
        assert result.reason == "Invalid or malformed URL"
        assert result.findings is None
        assert "findings" not in result.to_dict()

    def test_mailto_link_is_low_risk(self):
        result = scan_url("mailto:support@example.com", self.config)
        assert result.risk_level == "low"
        assert result.reason == "No HTTPS"
        assert result.findings.domain == ""
        assert result.findings.tld == ""
        assert result.findings.is_ip_based is False

    def test_custom_trusted_domains(self):
        config = self.config.replace(trusted_domains=["example.org"])
        result = scan_url("http://shop.example.org/login-now", config)
        assert result.risk_level == "low"


class TestTrustedDomain:

    def setup_method(self):
        self.config = ThreatConfig()

    @pytest.mark.parametrize("domain", [
        "google.com", "mail.google.com", "WWW.GITHUB.COM", "cs.stanford.edu", "irs.gov",
    ])
    def test_trusted(self, domain):
        assert is_trusted_domain(domain, self.config)

    @pytest.mark.parametrize("domain", [
        "evilgoogle.com", "google.com.evil.io", "example.com",
    ])
    def test_not_trusted(self, domain):
        assert not is_trusted_domain(domain, self.config)


class TestScanURLs:

    def setup_method(self):
        self.config = ThreatConfig()

    def test_order_and_length_preserved(self):
        urls = [
            "https://example.com/",
            "not a url",
            "https://example.com/",
            "https://example.xyz/",
        ]
        results = scan_urls(urls, self.config)
        assert [r.url for r in results] == urls
        assert [r.risk_level for r in results] == ["low", "high", "low", "medium"]

    def test_empty(self):
        assert scan_urls([], self.config) == []

    def test_unexpected_error_is_isolated(self):
        real_scan = url_scanner.scan_url

        def flaky(url, config=None):
            if "boom" in url:
                raise RuntimeError("scanner exploded")
            return real_scan(url, config)

        with patch.object(url_scanner, "scan_url", side_effect=flaky):
            results = scan_urls(
                ["https://example.com/", "https://boom.example.com/"], self.config,
            )

        assert results[0].risk_level == "low"
        assert results[1].risk_level == "medium"
        assert results[1].reason == "Error scanning URL"

    def test_analyzer_scans_email_urls(self):
        email = NormalizedEmail(
            email_id="e1", sender="a@example.com", sender_domain="example.com",
            urls=["https://example.com/", "http://203.0.113.5/"],
        )
        analyzer = URLScanner(self.config)
        assert analyzer.order == 20
        results = analyzer.analyze(email)
        assert [r.risk_level for r in results] == ["low", "high"]


class TestHelpers:

    def test_has_high_risk_url(self):
        assert has_high_risk_url([
            URLScanResult(url="a", risk_level="low", reason=""),
            URLScanResult(url="b", risk_level="high", reason=""),
        ])
        assert not has_high_risk_url([
            URLScanResult(url="a", risk_level="medium", reason=""),
        ])
        assert not has_high_risk_url([])

    def test_sanitize_url_for_display(self):
        url = "http://example.com/" + "a" * 100
        assert sanitize_url_for_display(url) == f"[BLOCKED: {url[:50]}...]"
        assert sanitize_url_for_display("http://x.io") == "[BLOCKED: http://x.io...]"
