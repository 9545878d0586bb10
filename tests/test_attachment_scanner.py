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

"""Tests for the attachment / malware scanner."""
from unittest.mock import patch

import pytest

from ryzena_threat.analyzers import attachment_scanner
from ryzena_threat.analyzers.attachment_scanner import (
    AttachmentScanner,
    classify_attachment,
    scan_attachments,
)
from ryzena_threat.config import ThreatConfig
from ryzena_threat.models import AttachmentDescriptor, NormalizedEmail


def _attachment(filename: str, size: int = 1024) -> AttachmentDescriptor:
    return AttachmentDescriptor.from_dict({"filename": filename, "size": size})


class TestClassifyAttachment:

    def setup_method(self):
        self.config = ThreatConfig()

    def test_plain_pdf(self):
        finding = classify_attachment(_attachment("report.pdf"), self.config)
        assert not finding.flagged
        assert list(finding.risks) == []
        assert finding.extension == "pdf"

    def test_executable(self):
        finding = classify_attachment(_attachment("setup.EXE"), self.config)
        assert finding.is_executable
        assert finding.extension == "exe"
        assert list(finding.risks) == ["Executable file type (.exe)"]

    def test_script(self):
        finding = classify_attachment(_attachment("run.ps1"), self.config)
        assert finding.is_script
        assert not finding.is_executable
        assert finding.flagged

    def test_macro_document(self):
        finding = classify_attachment(_attachment("budget.xlsm"), self.config)
        assert finding.is_macro_enabled
        assert list(finding.risks) == ["Macro-enabled document (.xlsm)"]

    def test_archive_alone_does_not_flag(self):
        finding = classify_attachment(_attachment("photos.zip"), self.config)
        assert finding.is_archive
        assert not finding.flagged

    def test_double_extension(self):
        finding = classify_attachment(_attachment("invoice.pdf.exe"), self.config)
        assert finding.has_double_extension
        assert finding.is_executable
        assert list(finding.risks) == [
            "Executable file type (.exe)",
            "Double extension (hiding real file type)",
        ]

    @pytest.mark.parametrize("filename", [
        "scan.pdf.doc.exe",
        "invoice.pdf   .exe",
        "photo.jpg.js",
        "Payment.DOCX.SCR",
    ])
    def test_double_extension_variants(self, filename):
        finding = classify_attachment(_attachment(filename), self.config)
        assert finding.has_double_extension
        assert finding.flagged

    @pytest.mark.parametrize("filename", [
        "backup.tar.gz",
        "report.final.pdf",
        ".hidden.exe",
        "setup.exe",
    ])
    def test_not_double_extension(self, filename):
        finding = classify_attachment(_attachment(filename), self.config)
        assert not finding.has_double_extension

    def test_no_extension(self):
        finding = classify_attachment(_attachment("README"), self.config)
        assert finding.extension == ""
        assert not finding.flagged

    def test_custom_extension_sets(self):
        config = self.config.replace(executable_extensions=[".PDF"])
        finding = classify_attachment(_attachment("report.pdf"), config)
        assert finding.is_executable


class TestScanAttachments:

    def setup_method(self):
        self.config = ThreatConfig()

    def test_empty(self):
        result = scan_attachments([], self.config)
        assert result.has_risk is False
        assert list(result.flagged_files) == []

    def test_flagged_files_in_order(self):
        result = scan_attachments([
            _attachment("notes.txt"),
            _attachment("invoice.pdf.exe"),
            _attachment("macro.docm"),
        ], self.config)
        assert result.has_risk is True
        assert list(result.flagged_files) == ["invoice.pdf.exe", "macro.docm"]
        assert len(result.findings) == 3

    def test_has_risk_iff_flagged(self):
        result = scan_attachments([_attachment("archive.rar")], self.config)
        assert result.has_risk is False
        assert list(result.flagged_files) == []

    def test_failing_attachment_is_left_unflagged(self):
        real_classify = attachment_scanner.classify_attachment

        def flaky(attachment, config=None):
            if attachment.filename == "broken.exe":
                raise RuntimeError("classification failed")
            return real_classify(attachment, config)

        with patch.object(attachment_scanner, "classify_attachment", side_effect=flaky):
            result = scan_attachments(
                [_attachment("broken.exe"), _attachment("tool.bat")], self.config,
            )

        assert list(result.flagged_files) == ["tool.bat"]
        assert result.findings[0].filename == "broken.exe"
        assert not result.findings[0].flagged

    def test_analyzer_reads_email_attachments(self):
        email = NormalizedEmail(
            email_id="e1", sender="a@example.com", sender_domain="example.com",
            attachments=[_attachment("invoice.pdf.exe")],
        )
        analyzer = AttachmentScanner(self.config)
        assert analyzer.order == 30
        assert analyzer.analyze(email).has_risk is True
