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
Detection stages and analyzer discovery.

Any module in this package containing a class that inherits from
BaseAnalyzer is picked up by ``discover_analyzers()`` and run by the
pipeline, sorted by ``order``.
"""
import importlib
import inspect
import pkgutil

import ryzena_threat.analyzers as _self_pkg
from ryzena_threat.analyzers._base import BaseAnalyzer
from ryzena_threat.analyzers.attachment_scanner import (
    AttachmentScanner,
    classify_attachment,
    scan_attachments,
)
from ryzena_threat.analyzers.phishing import (
    PhishingAnalyzer,
    PhishingSignal,
    analyze_phishing,
    get_phishing_signals,
    is_phishing_threat,
)
from ryzena_threat.analyzers.url_scanner import (
    URLScanner,
    has_high_risk_url,
    is_trusted_domain,
    parse_url,
    sanitize_url_for_display,
    scan_url,
    scan_urls,
)
from ryzena_threat.config import ThreatConfig


def discover_analyzers(config: ThreatConfig | None = None) -> list[BaseAnalyzer]:
    """
    Find all BaseAnalyzer subclasses in this package.

    Args:
        config: Snapshot handed to every analyzer (active config if None).

    Returns:
        Instantiated analyzers, sorted by ``order``.
    """
    analyzers: list[BaseAnalyzer] = []
    seen_classes: set[type] = set()

    for _importer, module_name, _is_pkg in pkgutil.walk_packages(
        _self_pkg.__path__, prefix=_self_pkg.__name__ + ".",
    ):
        # Skip private modules (like _base.py)
        leaf = module_name.rsplit(".", 1)[-1]
        if leaf.startswith("_"):
            continue

        module = importlib.import_module(module_name)
        for _attr_name, attr_value in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(attr_value, BaseAnalyzer)
                and attr_value is not BaseAnalyzer
                and attr_value not in seen_classes
            ):
                seen_classes.add(attr_value)
                analyzers.append(attr_value(config))

    analyzers.sort(key=lambda a: a.order)
    return analyzers


__all__ = [
    "BaseAnalyzer",
    "discover_analyzers",
    "PhishingAnalyzer",
    "PhishingSignal",
    "analyze_phishing",
    "get_phishing_signals",
    "is_phishing_threat",
    "URLScanner",
    "parse_url",
    "scan_url",
    "scan_urls",
    "has_high_risk_url",
    "is_trusted_domain",
    "sanitize_url_for_display",
    "AttachmentScanner",
    "classify_attachment",
    "scan_attachments",
]
