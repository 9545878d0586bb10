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
Analyzer: Phishing Signals

Runs a fixed, ordered catalog of independent boolean detectors over the
email. Every detector that fires adds its configured weight; the total is
capped at 1.0 (not normalized) and rounded to 3 decimals. More signals
firing at once can only push the probability up.

What it checks (in evaluation order):
- Urgency, credential-harvesting and financial-urgency language
- Sender domain on a suspicious TLD
- Reply-To / Return-Path domain differing from the sender domain
- Links pointing somewhere unrelated to the sender, or at suspicious TLDs
- Too many links
- Generic greetings ("dear customer")
- Brand names mentioned by a sender outside that brand's domain
- Failed SPF / DKIM / DMARC

A detector that raises is recorded in ``diagnostics`` and counted as not
triggered; the remaining detectors still run.
"""
import logging
import math
import time
from dataclasses import dataclass
from functools import partial
from typing import Callable

from ryzena_threat.analyzers._base import BaseAnalyzer
from ryzena_threat.analyzers.url_scanner import parse_url
from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.errors import DetectorError
from ryzena_threat.models import (
    DetectorOutcome,
    NormalizedEmail,
    PhishingResult,
    extract_domain,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def _content(email: NormalizedEmail) -> str:
    return f"{email.subject or ''} {email.body_text or ''}".lower()


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


def _url_hosts(email: NormalizedEmail) -> list[str]:
    """Hostnames of every parsable URL; unparsable ones are skipped."""
    hosts = []
    for url in email.urls:
        try:
            hosts.append(parse_url(url).hostname)
        except ValueError:
            continue
    return hosts


# ---------------------------------------------------------------------------
# Detectors: each takes (email, config) and returns bool
# ---------------------------------------------------------------------------

def detect_urgency(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return _contains_any(_content(email), config.urgency_keywords)


def detect_credential_harvesting(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return _contains_any(_content(email), config.credential_phrases)


def detect_financial_urgency(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return _contains_any(_content(email), config.financial_phrases)


def detect_suspicious_sender_tld(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return any(email.sender_domain.endswith(tld) for tld in config.suspicious_tlds)


def detect_domain_mismatch(email: NormalizedEmail, config: ThreatConfig) -> bool:
    """Reply-To or Return-Path domain differs from the sender domain."""
    meta = email.metadata
    if meta.reply_to_domain and meta.reply_to_domain != email.sender_domain:
        return True
    if meta.return_path:
        return_domain = extract_domain(meta.return_path)
        if return_domain and return_domain != email.sender_domain:
            return True
    return False


def detect_url_domain_mismatch(email: NormalizedEmail, config: ThreatConfig) -> bool:
    """A link host shares no substring relationship with the sender domain."""
    sender_domain = email.sender_domain
    return any(
        sender_domain not in host and host not in sender_domain
        for host in _url_hosts(email)
    )


def detect_suspicious_url_tld(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return any(
        host.endswith(tld)
        for host in _url_hosts(email)
        for tld in config.suspicious_tlds
    )


def detect_excessive_links(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return len(email.urls) > config.max_urls


def detect_generic_greeting(email: NormalizedEmail, config: ThreatConfig) -> bool:
    return _contains_any((email.body_text or "").lower(), config.generic_greetings)


def detect_spoofed_brand(email: NormalizedEmail, config: ThreatConfig) -> bool:
    """Content names a brand the sender domain does not carry."""
    content = _content(email)
    for brand in config.brand_names:
        brand = brand.lower()
        if brand in content and "".join(brand.split()) not in email.sender_domain:
            return True
    return False


def detect_failed_auth(email: NormalizedEmail, config: ThreatConfig) -> bool:
    meta = email.metadata
    failures = {v.lower() for v in config.auth_failure_values}
    return any(
        result and result.lower() in failures
        for result in (meta.spf_result, meta.dkim_result, meta.dmarc_result)
    )


#: (signal id, display name, detector) in evaluation order.
_CATALOG: tuple[tuple[str, str, Callable[[NormalizedEmail, ThreatConfig], bool]], ...] = (
    ("urgency_keywords", "Urgency Keywords Detected", detect_urgency),
    ("credential_harvesting", "Credential Harvesting Language", detect_credential_harvesting),
    ("financial_urgency", "Financial Urgency Language", detect_financial_urgency),
    ("suspicious_tld", "Suspicious TLD in Sender Domain", detect_suspicious_sender_tld),
    ("domain_mismatch", "Domain Mismatch (Reply-To/Return-Path)", detect_domain_mismatch),
    ("url_domain_mismatch", "URLs with Different Domains than Sender", detect_url_domain_mismatch),
    ("suspicious_url_tld", "URLs with Suspicious TLDs", detect_suspicious_url_tld),
    ("excessive_links", "Excessive Number of Links", detect_excessive_links),
    ("generic_greeting", "Generic Greeting", detect_generic_greeting),
    ("spoofed_brand", "Potential Brand Spoofing", detect_spoofed_brand),
    ("failed_auth", "Failed Email Authentication", detect_failed_auth),
)


@dataclass(frozen=True)
class PhishingSignal:
    """One catalog entry, bound to a config snapshot."""
    id: str
    name: str
    weight: float
    detect: Callable[[NormalizedEmail], bool]

    def evaluate(self, email: NormalizedEmail) -> tuple[bool, DetectorError | None]:
        """Run the detector, returning (triggered, error) instead of raising."""
        try:
            return bool(self.detect(email)), None
        except Exception as exc:
            return False, DetectorError(self.id, exc)


def get_phishing_signals(config: ThreatConfig | None = None) -> list[PhishingSignal]:
    """The ordered detector catalog with weights from ``config``."""
    config = config if config is not None else get_threat_config()
    return [
        PhishingSignal(
            id=signal_id,
            name=name,
            weight=config.signal_weight(signal_id),
            detect=partial(detector, config=config),
        )
        for signal_id, name, detector in _CATALOG
    ]


def _round3(value: float) -> float:
    """Round half-up to 3 decimals."""
    return math.floor(value * 1000 + 0.5) / 1000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_phishing(
    email: NormalizedEmail, config: ThreatConfig | None = None,
) -> PhishingResult:
    """Score an email against the phishing signal catalog."""
    t0 = time.monotonic()
    signals: list[str] = []
    weights: dict[str, float] = {}
    diagnostics: list[DetectorOutcome] = []
    total = 0.0

    for signal in get_phishing_signals(config):
        triggered, error = signal.evaluate(email)
        if error is not None:
            logger.warning(
                "Signal detector '%s' failed on email %s: %s",
                signal.id, email.email_id, error.cause,
            )
            diagnostics.append(DetectorOutcome(signal_id=signal.id, error=str(error.cause)))
            continue
        if triggered:
            signals.append(signal.name)
            weights[signal.id] = signal.weight
            total += signal.weight

    probability = _round3(min(total, 1.0))

    logger.info(
        "Phishing analysis for %s: probability=%.3f signals=%d [%s] (%.1fms)",
        email.email_id, probability, len(signals), ", ".join(signals),
        (time.monotonic() - t0) * 1000,
    )

    return PhishingResult(
        probability=probability,
        signals=signals,
        signal_weights=weights,
        diagnostics=diagnostics,
    )


def is_phishing_threat(
    result: PhishingResult, config: ThreatConfig | None = None,
) -> bool:
    """True if the probability is strictly above the configured threshold."""
    config = config if config is not None else get_threat_config()
    return result.probability > config.phishing_threshold


class PhishingAnalyzer(BaseAnalyzer):
    """Weighted phishing-signal scoring."""

    name = "phishing_signals"
    description = "Scores urgency, credential, spoofing and authentication signals"
    order = 10

    def analyze(self, email: NormalizedEmail) -> PhishingResult:
        return analyze_phishing(email, self.config)
