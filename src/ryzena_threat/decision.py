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
Ryzena Threat Decision Engine

Fuses the three stage results into one verdict.

Zero-trust status rule (any one channel is enough):
  - phishing probability above the configured threshold
  - at least one high-risk URL
  - at least one flagged attachment

Trust score is computed independently of status:
  (1 - probability) * 100
  - 15 per high-risk URL, - 5 per medium-risk URL
  - 20 per flagged attachment
  clamped to [0, 100] and rounded.

When the email is SUSPICIOUS, every high or medium URL is blocked and
rewritten out of the HTML body.
"""
import logging
import math
import time
from datetime import datetime, timezone

from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.models import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    SAFE,
    SUSPICIOUS,
    MalwareResult,
    NormalizedEmail,
    PhishingResult,
    SecurityAnalysisResult,
    URLScanResult,
)
from ryzena_threat.sanitize import sanitize_html

logger = logging.getLogger(__name__)

HIGH_RISK_URL_PENALTY = 15
MEDIUM_RISK_URL_PENALTY = 5
FLAGGED_ATTACHMENT_PENALTY = 20

ACTION_FLAGGED = "Email flagged as suspicious"
ACTION_FORWARDED = "Forwarded to AI explanation service"


def _count_level(url_results: list[URLScanResult], level: str) -> int:
    return sum(1 for r in url_results if r.risk_level == level)


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class DecisionEngine:
    """Turn phishing, URL and attachment results into a SecurityAnalysisResult."""

    def __init__(self, config: ThreatConfig | None = None):
        self.config = config if config is not None else get_threat_config()

    # --- Individual rules ---

    def determine_status(
        self,
        phishing: PhishingResult,
        url_results: list[URLScanResult],
        malware: MalwareResult,
    ) -> str:
        if phishing.probability > self.config.phishing_threshold:
            return SUSPICIOUS
        if any(r.risk_level == RISK_HIGH for r in url_results):
            return SUSPICIOUS
        if malware.has_risk:
            return SUSPICIOUS
        return SAFE

    def calculate_trust_score(
        self,
        phishing: PhishingResult,
        url_results: list[URLScanResult],
        malware: MalwareResult,
    ) -> int:
        score = (1 - phishing.probability) * 100
        score -= _count_level(url_results, RISK_HIGH) * HIGH_RISK_URL_PENALTY
        score -= _count_level(url_results, RISK_MEDIUM) * MEDIUM_RISK_URL_PENALTY
        if malware.has_risk:
            score -= len(malware.flagged_files) * FLAGGED_ATTACHMENT_PENALTY
        # Round half up, then clamp
        return max(0, min(100, int(math.floor(score + 0.5))))

    @staticmethod
    def get_blocked_urls(url_results: list[URLScanResult]) -> list[str]:
        """URLs rated high or medium, in scan order."""
        return [
            r.url for r in url_results
            if r.risk_level in (RISK_HIGH, RISK_MEDIUM)
        ]

    @staticmethod
    def determine_actions(
        status: str, blocked_urls: list[str], malware: MalwareResult,
    ) -> list[str]:
        if status != SUSPICIOUS:
            return []

        actions = [ACTION_FLAGGED]
        if blocked_urls:
            actions.append(f"{len(blocked_urls)} URL(s) blocked")
        if malware.has_risk:
            actions.append(f"{len(malware.flagged_files)} attachment(s) flagged")
        actions.append(ACTION_FORWARDED)
        return actions

    # --- Full decision ---

    def decide(
        self,
        email: NormalizedEmail,
        phishing: PhishingResult,
        url_results: list[URLScanResult],
        malware: MalwareResult,
        analyzed_at: str | None = None,
    ) -> SecurityAnalysisResult:
        """Produce the final verdict for one email."""
        t0 = time.monotonic()

        status = self.determine_status(phishing, url_results, malware)
        trust_score = self.calculate_trust_score(phishing, url_results, malware)

        blocked_urls = self.get_blocked_urls(url_results) if status == SUSPICIOUS else []
        original_body = email.body_html or ""
        if status == SUSPICIOUS and blocked_urls:
            sanitized_body = sanitize_html(original_body, blocked_urls)
        else:
            sanitized_body = original_body

        result = SecurityAnalysisResult(
            email_id=email.email_id,
            status=status,
            trust_score=trust_score,
            phishing_signals=list(phishing.signals),
            phishing_probability=phishing.probability,
            url_findings=list(url_results),
            malware_findings=malware,
            sanitized_body=sanitized_body,
            original_body=original_body,
            security_flag=status == SUSPICIOUS,
            analyzed_at=analyzed_at or utc_now_iso(),
            actions_taken=self.determine_actions(status, blocked_urls, malware),
            blocked_urls=blocked_urls,
        )

        logger.info(
            "Decision for %s: status=%s trust_score=%d probability=%.3f "
            "urls=%d blocked=%d malware_risk=%s (%.1fms)",
            email.email_id, status, trust_score, phishing.probability,
            len(url_results), len(blocked_urls), malware.has_risk,
            (time.monotonic() - t0) * 1000,
        )
        return result


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def analyze_and_decide(
    email: NormalizedEmail,
    phishing: PhishingResult,
    url_results: list[URLScanResult],
    malware: MalwareResult,
    config: ThreatConfig | None = None,
    analyzed_at: str | None = None,
) -> SecurityAnalysisResult:
    return DecisionEngine(config).decide(
        email, phishing, url_results, malware, analyzed_at=analyzed_at,
    )


def determine_status(phishing, url_results, malware, config=None) -> str:
    return DecisionEngine(config).determine_status(phishing, url_results, malware)


def calculate_trust_score(phishing, url_results, malware, config=None) -> int:
    return DecisionEngine(config).calculate_trust_score(phishing, url_results, malware)


def quick_threat_check(
    phishing: PhishingResult,
    url_results: list[URLScanResult],
    malware: MalwareResult,
    config: ThreatConfig | None = None,
) -> bool:
    """True if the email would be SUSPICIOUS, without building a result."""
    return determine_status(phishing, url_results, malware, config) == SUSPICIOUS


def build_explanation_payload(result: SecurityAnalysisResult) -> dict:
    """
    The hand-off record for the explanation service.

    Carries the verdict, the triggered signals, the URL risk breakdown with
    the non-low findings, and the flagged attachment names. The original
    body is not included.
    """
    breakdown = {
        level: _count_level(result.url_findings, level)
        for level in (RISK_HIGH, RISK_MEDIUM, RISK_LOW)
    }
    return {
        "email_id": result.email_id,
        "status": result.status,
        "trust_score": result.trust_score,
        "phishing_signals": list(result.phishing_signals),
        "phishing_probability": result.phishing_probability,
        "url_risk_breakdown": breakdown,
        "risky_urls": [
            r.to_dict() for r in result.url_findings if r.risk_level != RISK_LOW
        ],
        "flagged_files": list(result.malware_findings.flagged_files),
        "analyzed_at": result.analyzed_at,
    }
