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
Exception taxonomy for the threat pipeline.

- ConfigurationError  = bad tunables, raised when a config snapshot is built
- EmailParsingError   = a normalized-email payload we cannot accept
- DetectorError       = one phishing detector blew up (recorded, not raised)
- ThreatAnalysisError = anything unexpected escaping the pipeline
"""
from typing import Any


class ThreatError(Exception):
    """Base class for all pipeline errors."""

    code = "THREAT_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigurationError(ThreatError):
    code = "CONFIGURATION_ERROR"


class EmailParsingError(ThreatError):
    code = "EMAIL_PARSING_ERROR"


class DetectorError(ThreatError):
    code = "DETECTOR_ERROR"

    def __init__(self, signal_id: str, cause: BaseException):
        super().__init__(
            f"Detector '{signal_id}' failed: {cause}",
            {"signal_id": signal_id, "error": str(cause)},
        )
        self.signal_id = signal_id
        self.cause = cause


class ThreatAnalysisError(ThreatError):
    code = "THREAT_ANALYSIS_ERROR"
