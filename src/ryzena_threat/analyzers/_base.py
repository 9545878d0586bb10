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
Ryzena Threat Analyzer Base Class

Each detection stage (phishing signals, URL risk, attachments) is a
BaseAnalyzer. A stage:

1. Is built with an immutable ThreatConfig snapshot
2. Reads only the NormalizedEmail it is given
3. Returns its own frozen result type from analyze()

Stages share no mutable state, so the pipeline may run them in any order
or in parallel.

Example:
    from ryzena_threat.analyzers._base import BaseAnalyzer

    class MyAnalyzer(BaseAnalyzer):
        name = "my_check"
        description = "What this analyzer does"
        order = 40

        def analyze(self, email):
            ...
"""
from abc import ABC, abstractmethod
from typing import Any

from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.models import NormalizedEmail


class BaseAnalyzer(ABC):
    """
    Base class for all pipeline stages.

    Attributes:
        name:        Unique identifier for this stage (shown in logs)
        description: Human-readable description of what it checks
        order:       Position in the pipeline log line (lower runs first)
    """

    name: str = "unnamed"
    description: str = ""
    order: int = 100

    def __init__(self, config: ThreatConfig | None = None):
        self.config = config if config is not None else get_threat_config()

    @abstractmethod
    def analyze(self, email: NormalizedEmail) -> Any:
        """
        Analyze an email and return this stage's result.

        Args:
            email: The email to analyze. Useful fields:
                   - email.sender_domain (str)  "example.com"
                   - email.subject       (str)
                   - email.body_text     (str)
                   - email.urls          (list) extracted URLs
                   - email.attachments   (list) AttachmentDescriptor
                   - email.metadata      (EmailMetadata)
        """
        ...
