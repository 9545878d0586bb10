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
Ryzena Threat Worker — Celery Tasks

Every analysis is published to the audit queue. Suspicious emails are
also handed to the explanation service.
"""
import json
import logging
import time

from ryzena_threat.celery_app import app
from ryzena_threat.decision import build_explanation_payload
from ryzena_threat.errors import EmailParsingError
from ryzena_threat.models import SUSPICIOUS, NormalizedEmail
from ryzena_threat.pipeline import build_processing_summary, run_pipeline

logger = logging.getLogger(__name__)

AUDIT_TASK = "audit.tasks.record_analysis"
AUDIT_QUEUE = "audit"
EXPLANATION_TASK = "explanation.tasks.explain_threat"
EXPLANATION_QUEUE = "explanations"


@app.task(
    name="ryzena_threat.tasks.analyze_email",
    bind=True,
    max_retries=3,
    default_retry_delay=10,
    acks_late=True,
)
def analyze_email(self, email_json: str):
    """
    Analyze a normalized email and publish the outcome.

    1. Audit queue: the full SecurityAnalysisResult, always
    2. Explanation queue: the hand-off payload, SUSPICIOUS only

    Returns the processing summary.
    """
    try:
        t0 = time.monotonic()
        email = NormalizedEmail.from_dict(json.loads(email_json))

        logger.info(
            "Analyzing email: email_id=%s from=%s subject=%s urls=%d attachments=%d",
            email.email_id, email.sender, email.subject,
            len(email.urls), len(email.attachments),
        )

        result = run_pipeline(email)

        app.send_task(
            AUDIT_TASK,
            args=[json.dumps(result.to_dict())],
            queue=AUDIT_QUEUE,
        )

        if result.status == SUSPICIOUS:
            app.send_task(
                EXPLANATION_TASK,
                args=[json.dumps(build_explanation_payload(result))],
                queue=EXPLANATION_QUEUE,
            )
            logger.info("Explanation requested for email %s", result.email_id)

        summary = build_processing_summary(
            email, result, (time.monotonic() - t0) * 1000,
        )
        logger.info(
            "Analysis published: email_id=%s status=%s trust_score=%d",
            result.email_id, result.status, result.trust_score,
        )
        return summary

    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in normalized email: %s", exc)
        raise

    except EmailParsingError as exc:
        logger.error("Rejected normalized email: %s", exc)
        raise

    except Exception as exc:
        logger.exception("Failed to analyze email: %s", exc)
        raise self.retry(exc=exc)
