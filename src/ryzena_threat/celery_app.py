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
Ryzena Threat Worker — Celery Application Configuration

This is the single source of truth for Celery configuration in the threat
worker. All workers import this app instance.

Queues:
    emails        normalized emails in (consumed here)
    audit         every SecurityAnalysisResult out
    explanations  SUSPICIOUS hand-off payloads out
"""
import os
from celery import Celery

# Redis URL from environment (matches docker-compose / .env)
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Analysis is pure CPU work on one email; anything slower than this is stuck
ANALYSIS_SOFT_TIME_LIMIT = int(os.environ.get("THREAT_TASK_SOFT_TIME_LIMIT", "30"))
ANALYSIS_TIME_LIMIT = ANALYSIS_SOFT_TIME_LIMIT + 15

app = Celery("ryzena_threat")

app.config_from_object({
    # Broker (where normalized emails come from)
    "broker_url": REDIS_URL,

    # Result backend (holds the processing summary returned by the task)
    "result_backend": REDIS_URL,
    "result_expires": 3600,                # Summaries are only read right after analysis

    # Serialisation: JSON only, no pickle
    "task_serializer": "json",
    "result_serializer": "json",
    "accept_content": ["json"],

    # Task routing: inbound analysis plus the two downstream consumers
    "task_routes": {
        "ryzena_threat.tasks.analyze_email": {"queue": "emails"},
        "audit.tasks.record_analysis": {"queue": "audit"},
        "explanation.tasks.explain_threat": {"queue": "explanations"},
    },

    # Reliability
    "task_acks_late": True,                # Ack only after the result is published
    "worker_prefetch_multiplier": 1,       # One email at a time per worker process
    "task_reject_on_worker_lost": True,    # Re-queue the email if the worker dies
    "task_soft_time_limit": ANALYSIS_SOFT_TIME_LIMIT,
    "task_time_limit": ANALYSIS_TIME_LIMIT,

    # Timezone (analyzed_at stamps are UTC)
    "timezone": "UTC",
    "enable_utc": True,
})

# Auto-discover tasks in the ryzena_threat package
app.autodiscover_tasks(["ryzena_threat"])
