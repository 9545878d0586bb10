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
Ryzena Threat Analysis Pipeline

Orchestrates analysis of an email:
1. Discovers the detection stages (phishing signals, URL risk, attachments)
2. Runs them, one after another or side by side on a thread pool
3. Hands the three results to the decision engine
4. Returns the SecurityAnalysisResult

The stages only read the email and the config snapshot, so running them
in parallel gives exactly the same result as running them in order.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from ryzena_threat.analyzers import (
    AttachmentScanner,
    BaseAnalyzer,
    PhishingAnalyzer,
    URLScanner,
    discover_analyzers,
)
from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.decision import DecisionEngine
from ryzena_threat.errors import ThreatAnalysisError, ThreatError
from ryzena_threat.models import NormalizedEmail, RISK_HIGH, SecurityAnalysisResult

logger = logging.getLogger(__name__)


def _run_stage(analyzer: BaseAnalyzer, email: NormalizedEmail) -> tuple[Any, float]:
    t0 = time.monotonic()
    result = analyzer.analyze(email)
    return result, (time.monotonic() - t0) * 1000


def run_pipeline(
    email: NormalizedEmail,
    config: ThreatConfig | None = None,
    *,
    parallel: bool = False,
    analyzed_at: str | None = None,
) -> SecurityAnalysisResult:
    """
    Run every detection stage on an email and decide.

    Args:
        email:       The normalized email.
        config:      Snapshot to analyze with (active config if None). The
                     same snapshot is used for every stage.
        parallel:    Run the detection stages on a thread pool.
        analyzed_at: Timestamp to stamp on the result (UTC now if None).

    Raises:
        ThreatAnalysisError: a stage failed in a way it could not isolate.
    """
    config = config if config is not None else get_threat_config()
    analyzers = discover_analyzers(config)
    logger.info(
        "Running %d stages on email %s (order: %s, parallel=%s)",
        len(analyzers), email.email_id,
        ", ".join(f"{a.name}({a.order})" for a in analyzers), parallel,
    )

    t0 = time.monotonic()
    outputs: dict[str, Any] = {}
    current = None
    try:
        if parallel:
            with ThreadPoolExecutor(
                max_workers=max(1, len(analyzers)),
                thread_name_prefix="threat-stage",
            ) as pool:
                futures = [(a, pool.submit(_run_stage, a, email)) for a in analyzers]
                for current, future in futures:
                    outputs[current.name], elapsed_ms = future.result()
                    logger.info("Stage '%s' done (%.1fms)", current.name, elapsed_ms)
        else:
            for current in analyzers:
                outputs[current.name], elapsed_ms = _run_stage(current, email)
                logger.info("Stage '%s' done (%.1fms)", current.name, elapsed_ms)

        result = DecisionEngine(config).decide(
            email,
            outputs[PhishingAnalyzer.name],
            outputs[URLScanner.name],
            outputs[AttachmentScanner.name],
            analyzed_at=analyzed_at,
        )
    except ThreatError:
        raise
    except Exception as exc:
        stage = current.name if current is not None else "decision"
        logger.exception(
            "Threat analysis failed for email %s in stage '%s': %s",
            email.email_id, stage, exc,
        )
        raise ThreatAnalysisError(
            f"Threat analysis failed: {exc}",
            {"email_id": email.email_id, "stage": stage},
        ) from exc

    logger.info(
        "Analysis complete for email %s: status=%s trust_score=%d (%.1fms)",
        email.email_id, result.status, result.trust_score,
        (time.monotonic() - t0) * 1000,
    )
    return result


def build_processing_summary(
    email: NormalizedEmail,
    result: SecurityAnalysisResult,
    processing_time_ms: float,
) -> dict:
    """Compact summary of one analysis, as returned to the caller."""
    return {
        "email_id": result.email_id,
        "status": result.status,
        "trust_score": result.trust_score,
        "processing_time_ms": round(processing_time_ms, 1),
        "analysis": {
            "phishing_probability": result.phishing_probability,
            "phishing_signals": list(result.phishing_signals),
            "urls_scanned": len(result.url_findings),
            "urls_high_risk": sum(
                1 for r in result.url_findings if r.risk_level == RISK_HIGH
            ),
            "attachments_scanned": len(email.attachments),
            "attachments_flagged": len(result.malware_findings.flagged_files),
            "actions_taken": list(result.actions_taken),
        },
    }
