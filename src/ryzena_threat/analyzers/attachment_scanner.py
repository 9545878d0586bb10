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
Analyzer: Attachment Safety

Classifies attachments by filename alone. File content is never opened,
so archives are only labelled, never unpacked.

What it checks (in this order, each adds a risk):
- Executable file types (.exe, .scr, .bat, ...)
- Scripts (.js, .vbs, .ps1, ...)
- Macro-enabled Office documents (.docm, .xlsm, ...)
- Double extensions (e.g. "invoice.pdf.exe" - the real type is .exe)

A file with at least one risk is flagged.
"""
import logging

from ryzena_threat.analyzers._base import BaseAnalyzer
from ryzena_threat.config import ThreatConfig, get_threat_config
from ryzena_threat.models import (
    AttachmentDescriptor,
    MalwareFinding,
    MalwareResult,
    NormalizedEmail,
    extract_extension,
)

logger = logging.getLogger(__name__)

# Longest segment still treated as a decoy extension ("pdf", "jpeg", "xlsx")
MAX_DECOY_EXTENSION_LENGTH = 5


def _has_double_extension(filename: str, config: ThreatConfig) -> bool:
    """
    True for "<name>.<decoy>.<dangerous>" names.

    Every segment between the base name and the real extension is checked,
    so "scan.pdf.doc.exe" and "invoice.pdf   .exe" are both caught.
    """
    segments = [s.strip() for s in filename.lower().split(".")]
    if len(segments) < 3 or not segments[0]:
        return False

    real_ext = segments[-1]
    dangerous = config.executable_extensions | config.script_extensions
    if real_ext not in dangerous:
        return False

    return any(
        s.isalnum() and len(s) <= MAX_DECOY_EXTENSION_LENGTH
        for s in segments[1:-1]
    )


def classify_attachment(
    attachment: AttachmentDescriptor, config: ThreatConfig | None = None,
) -> MalwareFinding:
    """Classify one attachment by its filename and extension."""
    config = config if config is not None else get_threat_config()
    extension = attachment.extension or extract_extension(attachment.filename)
    extension = extension.lower().lstrip(".")

    is_executable = extension in config.executable_extensions
    is_script = extension in config.script_extensions
    is_macro = extension in config.macro_extensions
    is_archive = extension in config.archive_extensions
    double_ext = _has_double_extension(attachment.filename, config)

    risks = []
    if is_executable:
        risks.append(f"Executable file type (.{extension})")
    if is_script:
        risks.append(f"Script file type (.{extension})")
    if is_macro:
        risks.append(f"Macro-enabled document (.{extension})")
    if double_ext:
        risks.append("Double extension (hiding real file type)")

    return MalwareFinding(
        filename=attachment.filename,
        extension=extension,
        risks=risks,
        is_executable=is_executable,
        has_double_extension=double_ext,
        is_macro_enabled=is_macro,
        is_script=is_script,
        is_archive=is_archive,
    )


def scan_attachments(
    attachments: list[AttachmentDescriptor], config: ThreatConfig | None = None,
) -> MalwareResult:
    """Classify every attachment and aggregate the flagged ones."""
    config = config if config is not None else get_threat_config()
    findings = []

    for attachment in attachments:
        try:
            findings.append(classify_attachment(attachment, config))
        except Exception as exc:
            filename = getattr(attachment, "filename", "") or "unknown"
            logger.warning("Attachment scan failed for %s: %s", filename, exc)
            findings.append(MalwareFinding(filename=filename))

    flagged = [f.filename for f in findings if f.flagged]

    if attachments:
        logger.info(
            "Attachment scan complete: scanned=%d flagged=%d%s",
            len(attachments), len(flagged),
            f" [{', '.join(flagged)}]" if flagged else "",
        )

    return MalwareResult(
        has_risk=bool(flagged),
        flagged_files=flagged,
        findings=findings,
    )


class AttachmentScanner(BaseAnalyzer):
    """Extension-based attachment classification."""

    name = "attachment_risk"
    description = "Flags executables, scripts, macro documents and double extensions"
    order = 30

    def analyze(self, email: NormalizedEmail) -> MalwareResult:
        return scan_attachments(email.attachments, self.config)
