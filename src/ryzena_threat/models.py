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
Ryzena Threat — Data Models

These dataclasses define the data structures flowing through the threat
pipeline.

For beginners:
- NormalizedEmail        = the email that came in (input)
- PhishingResult         = what the phishing signal engine found
- URLScanResult          = risk verdict for one URL
- MalwareResult          = what the attachment scanner found
- SecurityAnalysisResult = the final decision (output)

Every result is frozen: once a stage builds it, nobody changes it.
"""
import hashlib
from dataclasses import dataclass, field
from typing import Optional

from ryzena_threat.errors import EmailParsingError

SAFE = "SAFE"
SUSPICIOUS = "SUSPICIOUS"

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"


def _pick(data: dict, snake: str, camel: str, default=None):
    """Read a key that may arrive in snake_case or camelCase."""
    if snake in data and data[snake] is not None:
        return data[snake]
    if camel in data and data[camel] is not None:
        return data[camel]
    return default


def extract_domain(address: str) -> str:
    """Lower-cased part of an address after the last '@' ('' if none)."""
    address = (address or "").strip().strip("<>").lower()
    if "@" not in address:
        return ""
    return address.rsplit("@", 1)[1].strip()


def extract_extension(filename: str) -> str:
    """Lower-cased last dot-segment of a filename ('' if there is none)."""
    parts = (filename or "").strip().split(".")
    return parts[-1].lower() if len(parts) > 1 else ""


# ---------------------------------------------------------------------------
# Input records (produced by the normalization collaborator)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AttachmentDescriptor:
    """Metadata for one attachment. Content is never inspected."""
    filename: str
    extension: str = ""
    size: int = 0
    content_type: Optional[str] = None
    content_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AttachmentDescriptor":
        filename = data.get("filename") or "unknown"
        return cls(
            filename=filename,
            extension=extract_extension(filename),
            size=int(data.get("size") or 0),
            content_type=_pick(data, "content_type", "contentType"),
            content_id=_pick(data, "content_id", "contentId"),
        )

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "extension": self.extension,
            "size": self.size,
            "content_type": self.content_type,
            "content_id": self.content_id,
        }


@dataclass(frozen=True)
class EmailMetadata:
    """Authentication results and routing headers pulled out upstream."""
    spf_result: str = ""
    dkim_result: str = ""
    dmarc_result: str = ""
    reply_to: str = ""
    reply_to_domain: str = ""
    return_path: str = ""
    message_id: str = ""
    originating_ip: str = ""
    received_chain: list = field(default_factory=list)  # list[str]

    @classmethod
    def from_dict(cls, data: dict | None) -> "EmailMetadata":
        data = data or {}
        reply_to = _pick(data, "reply_to", "replyTo", "")
        reply_to_domain = _pick(data, "reply_to_domain", "replyToDomain", "")
        if reply_to and not reply_to_domain:
            reply_to_domain = extract_domain(reply_to)
        return cls(
            spf_result=_pick(data, "spf_result", "spfResult", ""),
            dkim_result=_pick(data, "dkim_result", "dkimResult", ""),
            dmarc_result=_pick(data, "dmarc_result", "dmarcResult", ""),
            reply_to=reply_to,
            reply_to_domain=reply_to_domain.lower(),
            return_path=_pick(data, "return_path", "returnPath", ""),
            message_id=_pick(data, "message_id", "messageId", ""),
            originating_ip=_pick(data, "originating_ip", "originatingIp", ""),
            received_chain=list(_pick(data, "received_chain", "receivedChain", [])),
        )

    def to_dict(self) -> dict:
        return {
            "spf_result": self.spf_result,
            "dkim_result": self.dkim_result,
            "dmarc_result": self.dmarc_result,
            "reply_to": self.reply_to,
            "reply_to_domain": self.reply_to_domain,
            "return_path": self.return_path,
            "message_id": self.message_id,
            "originating_ip": self.originating_ip,
            "received_chain": list(self.received_chain),
        }


@dataclass(frozen=True)
class NormalizedEmail:
    """
    A normalized email entering the threat pipeline.

    Key fields:
    - sender / sender_domain: who sent it (domain is always lower-case)
    - urls:        every URL extracted upstream, in order, duplicates kept
    - attachments: AttachmentDescriptor list (may be empty, never None)
    - body_html / body_text: raw bodies; html is what gets sanitized
    - metadata:    SPF/DKIM/DMARC results, Reply-To, Return-Path
    """
    email_id: str = ""
    sender: str = ""
    sender_domain: str = ""
    recipient: str = ""
    subject: str = ""
    urls: list = field(default_factory=list)          # list[str]
    attachments: list = field(default_factory=list)   # list[AttachmentDescriptor]
    body_html: str = ""
    body_text: str = ""
    metadata: EmailMetadata = field(default_factory=EmailMetadata)
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedEmail":
        """Create a NormalizedEmail from the JSON dict off the queue.

        Accepts snake_case keys or the camelCase keys the normalization
        service emits. sender_domain and attachment extensions are derived
        here rather than trusted from the payload.
        """
        sender = (data.get("sender") or "").strip().lower()
        sender_domain = extract_domain(sender)
        if not sender_domain:
            raise EmailParsingError(
                "Invalid sender email address", {"sender": sender},
            )

        recipient = (data.get("recipient") or "").strip().lower()
        subject = data.get("subject") or ""
        body_html = _pick(data, "body_html", "bodyHtml", "")
        body_text = _pick(data, "body_text", "bodyText", "")
        timestamp = data.get("timestamp") or ""

        email_id = _pick(data, "email_id", "emailId", "")
        if not email_id:
            email_id = generate_email_id(
                sender, recipient, subject, timestamp, body_text,
            )

        return cls(
            email_id=email_id,
            sender=sender,
            sender_domain=sender_domain,
            recipient=recipient,
            subject=subject,
            urls=[str(u) for u in data.get("urls") or []],
            attachments=[
                AttachmentDescriptor.from_dict(a)
                for a in data.get("attachments") or []
            ],
            body_html=body_html,
            body_text=body_text,
            metadata=EmailMetadata.from_dict(data.get("metadata")),
            timestamp=timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "email_id": self.email_id,
            "sender": self.sender,
            "sender_domain": self.sender_domain,
            "recipient": self.recipient,
            "subject": self.subject,
            "urls": list(self.urls),
            "attachments": [a.to_dict() for a in self.attachments],
            "body_html": self.body_html,
            "body_text": self.body_text,
            "metadata": self.metadata.to_dict(),
            "timestamp": self.timestamp,
        }


def generate_email_id(
    sender: str, recipient: str, subject: str, timestamp: str, body_text: str,
) -> str:
    """Deterministic 16-hex-char id for payloads that arrive without one."""
    hash_input = "|".join(
        [sender, recipient, subject, timestamp, (body_text or "")[:1000]]
    )
    return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectorOutcome:
    """A detector that failed while inspecting an email."""
    signal_id: str
    error: str

    def to_dict(self) -> dict:
        return {"signal_id": self.signal_id, "error": self.error}


@dataclass(frozen=True)
class PhishingResult:
    """
    Output of the phishing signal engine.

    - probability:    capped sum of triggered weights, 3 decimals, in [0, 1]
    - signals:        names of triggered detectors, in evaluation order
    - signal_weights: signal id -> weight, triggered detectors only
    - diagnostics:    detectors that raised (never counted as triggered)
    """
    probability: float = 0.0
    signals: list = field(default_factory=list)          # list[str]
    signal_weights: dict = field(default_factory=dict)   # dict[str, float]
    diagnostics: list = field(default_factory=list)      # list[DetectorOutcome]

    def to_dict(self) -> dict:
        return {
            "probability": self.probability,
            "signals": list(self.signals),
            "signal_weights": dict(self.signal_weights),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass(frozen=True)
class URLFindings:
    """Structural facts about one parsed URL."""
    is_https: bool = False
    is_ip_based: bool = False
    domain: str = ""
    tld: str = ""
    is_suspicious_tld: bool = False
    has_redirect_pattern: bool = False
    path_depth: int = 0

    def to_dict(self) -> dict:
        return {
            "is_https": self.is_https,
            "is_ip_based": self.is_ip_based,
            "domain": self.domain,
            "tld": self.tld,
            "is_suspicious_tld": self.is_suspicious_tld,
            "has_redirect_pattern": self.has_redirect_pattern,
            "path_depth": self.path_depth,
        }


@dataclass(frozen=True)
class URLScanResult:
    """Risk verdict for one URL. ``findings`` is None for malformed URLs."""
    url: str
    risk_level: str
    reason: str
    findings: Optional[URLFindings] = None

    def to_dict(self) -> dict:
        payload = {
            "url": self.url,
            "risk_level": self.risk_level,
            "reason": self.reason,
        }
        if self.findings is not None:
            payload["findings"] = self.findings.to_dict()
        return payload


@dataclass(frozen=True)
class MalwareFinding:
    """Classification of one attachment."""
    filename: str
    extension: str = ""
    risks: list = field(default_factory=list)   # list[str]
    is_executable: bool = False
    has_double_extension: bool = False
    is_macro_enabled: bool = False
    is_script: bool = False
    is_archive: bool = False

    @property
    def flagged(self) -> bool:
        return bool(self.risks)

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "extension": self.extension,
            "risks": list(self.risks),
            "is_executable": self.is_executable,
            "has_double_extension": self.has_double_extension,
            "is_macro_enabled": self.is_macro_enabled,
            "is_script": self.is_script,
            "is_archive": self.is_archive,
        }


@dataclass(frozen=True)
class MalwareResult:
    """Aggregate attachment verdict. has_risk is True iff flagged_files."""
    has_risk: bool = False
    flagged_files: list = field(default_factory=list)   # list[str]
    findings: list = field(default_factory=list)        # list[MalwareFinding]

    def to_dict(self) -> dict:
        return {
            "has_risk": self.has_risk,
            "flagged_files": list(self.flagged_files),
            "findings": [f.to_dict() for f in self.findings],
        }


# ---------------------------------------------------------------------------
# Final artifact
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SecurityAnalysisResult:
    """
    The final decision for one email. The only object handed downstream
    (explanation service, audit log, HTTP response).

    ``original_body`` is kept for audit/investigation; end users only ever
    see ``sanitized_body``.
    """
    email_id: str
    status: str
    trust_score: int
    phishing_signals: list          # list[str]
    phishing_probability: float
    url_findings: list              # list[URLScanResult]
    malware_findings: MalwareResult
    sanitized_body: str
    original_body: str
    security_flag: bool
    analyzed_at: str
    actions_taken: list             # list[str]
    blocked_urls: list = field(default_factory=list)  # list[str]

    def to_dict(self) -> dict:
        """Serialise to a JSON-safe dict for the queue / audit log."""
        return {
            "email_id": self.email_id,
            "status": self.status,
            "trust_score": self.trust_score,
            "phishing_signals": list(self.phishing_signals),
            "phishing_probability": self.phishing_probability,
            "url_findings": [r.to_dict() for r in self.url_findings],
            "malware_findings": self.malware_findings.to_dict(),
            "sanitized_body": self.sanitized_body,
            "original_body": self.original_body,
            "security_flag": self.security_flag,
            "analyzed_at": self.analyzed_at,
            "actions_taken": list(self.actions_taken),
            "blocked_urls": list(self.blocked_urls),
        }
