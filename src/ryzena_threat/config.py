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
Ryzena Threat — Configuration

Two layers:

1. ``load_config()`` finds and caches config.yaml (same search order the
   other services use).
2. ``ThreatConfig`` is the immutable snapshot every analysis call reads.
   It validates itself on construction, so a bad weight or threshold is
   rejected before a single email is analyzed.

Swapping configuration means building a new snapshot (``replace()`` or
``reload_threat_config()``); analyses already in flight keep the snapshot
they started with.
"""
import dataclasses
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any

import yaml

from ryzena_threat import catalogs
from ryzena_threat.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Search paths for config.yaml (Docker mount, then relative to repo root)
_CONFIG_PATHS = [
    "/app/config/config.yaml",
    os.path.join(os.path.dirname(__file__), "..", "..", "config", "config.yaml"),
]

#: Detector ids in evaluation order, with their default weights.
DEFAULT_SIGNAL_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "urgency_keywords": 0.15,
    "credential_harvesting": 0.2,
    "financial_urgency": 0.15,
    "suspicious_tld": 0.2,
    "domain_mismatch": 0.25,
    "url_domain_mismatch": 0.15,
    "suspicious_url_tld": 0.18,
    "excessive_links": 0.1,
    "generic_greeting": 0.08,
    "spoofed_brand": 0.2,
    "failed_auth": 0.15,
})

_REGEX_FIELDS = ("redirect_patterns", "malicious_patterns")
_TUPLE_FIELDS = (
    "urgency_keywords",
    "credential_phrases",
    "financial_phrases",
    "generic_greetings",
    "brand_names",
    "suspicious_tlds",
    "auth_failure_values",
    "redirect_patterns",
    "malicious_patterns",
    "trusted_domains",
)
_SET_FIELDS = (
    "url_suspicious_tlds",
    "executable_extensions",
    "script_extensions",
    "macro_extensions",
    "archive_extensions",
)


@dataclass(frozen=True)
class ThreatConfig:
    """Immutable snapshot of every tunable the pipeline reads."""

    # --- Decision thresholds ---
    phishing_threshold: float = 0.7
    url_high_risk_threshold: float = 0.8

    # --- Phishing signal engine ---
    signal_weights: Mapping[str, float] = field(
        default_factory=lambda: DEFAULT_SIGNAL_WEIGHTS
    )
    max_urls: int = 10
    urgency_keywords: tuple[str, ...] = catalogs.URGENCY_KEYWORDS
    credential_phrases: tuple[str, ...] = catalogs.CREDENTIAL_PHRASES
    financial_phrases: tuple[str, ...] = catalogs.FINANCIAL_PHRASES
    generic_greetings: tuple[str, ...] = catalogs.GENERIC_GREETINGS
    brand_names: tuple[str, ...] = catalogs.BRAND_NAMES
    suspicious_tlds: tuple[str, ...] = catalogs.SUSPICIOUS_TLDS
    auth_failure_values: tuple[str, ...] = catalogs.AUTH_FAILURE_VALUES

    # --- URL risk scanner ---
    url_suspicious_tlds: frozenset[str] = catalogs.URL_SUSPICIOUS_TLDS
    redirect_patterns: tuple[str, ...] = catalogs.REDIRECT_PATTERNS
    malicious_patterns: tuple[str, ...] = catalogs.MALICIOUS_PATTERNS
    trusted_domains: tuple[str, ...] = catalogs.TRUSTED_DOMAINS

    # --- Attachment scanner ---
    executable_extensions: frozenset[str] = catalogs.EXECUTABLE_EXTENSIONS
    script_extensions: frozenset[str] = catalogs.SCRIPT_EXTENSIONS
    macro_extensions: frozenset[str] = catalogs.MACRO_EXTENSIONS
    archive_extensions: frozenset[str] = catalogs.ARCHIVE_EXTENSIONS

    def __post_init__(self):
        if not isinstance(self.signal_weights, Mapping):
            raise ConfigurationError(
                "signal_weights must be a mapping", {"value": self.signal_weights},
            )
        # Read-only private copy of the weights
        object.__setattr__(
            self, "signal_weights", MappingProxyType(dict(self.signal_weights)),
        )
        self._validate()

    # --- Validation ---

    def _validate(self) -> None:
        for name in _TUPLE_FIELDS + _SET_FIELDS:
            value = getattr(self, name)
            expected = frozenset if name in _SET_FIELDS else tuple
            if not isinstance(value, expected):
                raise ConfigurationError(
                    f"{name} must be a list of strings",
                    {"field": name, "value": value},
                )
            invalid = [v for v in value if not isinstance(v, str) or not v.strip()]
            if invalid:
                raise ConfigurationError(
                    f"{name} entries must be non-empty strings",
                    {"field": name, "entries": invalid},
                )

        for name in ("phishing_threshold", "url_high_risk_threshold"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigurationError(
                    f"{name} must be a number", {"field": name, "value": value},
                )
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"{name} must be within [0, 1]", {"field": name, "value": value},
                )

        unknown = set(self.signal_weights) - set(DEFAULT_SIGNAL_WEIGHTS)
        if unknown:
            raise ConfigurationError(
                "Unknown signal id(s) in signal_weights",
                {"signal_ids": sorted(unknown)},
            )
        missing = set(DEFAULT_SIGNAL_WEIGHTS) - set(self.signal_weights)
        if missing:
            raise ConfigurationError(
                "Missing weight for signal id(s)", {"signal_ids": sorted(missing)},
            )
        for signal_id, weight in self.signal_weights.items():
            if not isinstance(weight, (int, float)) or isinstance(weight, bool):
                raise ConfigurationError(
                    f"Weight for '{signal_id}' must be a number",
                    {"signal_id": signal_id, "weight": weight},
                )
            if not 0.0 < weight <= 1.0:
                raise ConfigurationError(
                    f"Weight for '{signal_id}' must be within (0, 1]",
                    {"signal_id": signal_id, "weight": weight},
                )

        if isinstance(self.max_urls, bool) or not isinstance(self.max_urls, int) \
                or self.max_urls < 0:
            raise ConfigurationError(
                "max_urls must be a non-negative integer", {"value": self.max_urls},
            )

        for name in _REGEX_FIELDS:
            for pattern in getattr(self, name):
                try:
                    re.compile(pattern)
                except re.error as exc:
                    raise ConfigurationError(
                        f"Invalid regex in {name}: {pattern!r}",
                        {"field": name, "pattern": pattern, "error": str(exc)},
                    ) from exc

    # --- Construction helpers ---

    def replace(self, **changes: Any) -> "ThreatConfig":
        """Return a new, revalidated snapshot with ``changes`` applied."""
        return dataclasses.replace(self, **_coerce(changes))

    def signal_weight(self, signal_id: str) -> float:
        return self.signal_weights[signal_id]

    @classmethod
    def from_dict(cls, data: dict | None) -> "ThreatConfig":
        """Build a snapshot from the ``threat:`` section of config.yaml.

        Missing keys keep their defaults. ``signal_weights`` may be partial;
        it is merged over the default weights. Unknown keys are rejected.
        """
        data = dict(data or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                "Unknown threat configuration key(s)", {"keys": sorted(unknown)},
            )

        if "signal_weights" in data:
            overrides = data["signal_weights"] or {}
            if not isinstance(overrides, dict):
                raise ConfigurationError(
                    "signal_weights must be a mapping",
                    {"value": overrides},
                )
            data["signal_weights"] = {**DEFAULT_SIGNAL_WEIGHTS, **overrides}

        return cls(**_coerce(data))

    def to_dict(self) -> dict:
        payload = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, frozenset):
                value = sorted(value)
            elif isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            payload[f.name] = value
        return payload


def _coerce(data: dict) -> dict:
    """Turn YAML lists into the tuple / frozenset types the snapshot holds.

    Anything that is not a list is passed through untouched and rejected
    by validation (a bare string is not a one-element list).
    """
    coerced = {}
    for key, value in data.items():
        if key in _SET_FIELDS and isinstance(value, (list, tuple, set, frozenset)):
            value = frozenset(
                v.lower().lstrip(".") if isinstance(v, str) else v for v in value
            )
        elif isinstance(value, list):
            value = tuple(value)
        coerced[key] = value
    return coerced


# ---------------------------------------------------------------------------
# config.yaml loading
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load and cache config.yaml from known paths.

    Returns:
        The parsed YAML config as a dict, or an empty dict if no config found.
    """
    config_path = os.environ.get("THREAT_CONFIG_PATH", "")
    search_paths = [config_path] + _CONFIG_PATHS if config_path else _CONFIG_PATHS

    for path in search_paths:
        if not path:
            continue
        try:
            with open(path) as f:
                config = yaml.safe_load(f) or {}
            logger.info("Configuration loaded from %s", path)
            return config
        except FileNotFoundError:
            continue

    logger.warning("No config.yaml found, using built-in threat defaults")
    return {}


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name, "")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a float", {"variable": name, "value": raw},
        ) from exc


def build_threat_config(raw: dict | None = None) -> ThreatConfig:
    """Build a validated snapshot from a config dict plus env overrides.

    Environment variables PHISHING_THRESHOLD and URL_HIGH_RISK_THRESHOLD win
    over whatever the YAML says.
    """
    if raw is None:
        raw = load_config()
    section = raw.get("threat", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError("'threat' section must be a mapping")
    section = dict(section)

    phishing = _env_float("PHISHING_THRESHOLD")
    if phishing is not None:
        section["phishing_threshold"] = phishing
    url_high = _env_float("URL_HIGH_RISK_THRESHOLD")
    if url_high is not None:
        section["url_high_risk_threshold"] = url_high

    config = ThreatConfig.from_dict(section)
    logger.info(
        "Threat config ready: phishing_threshold=%.2f url_high_risk_threshold=%.2f "
        "signals=%d",
        config.phishing_threshold, config.url_high_risk_threshold,
        len(config.signal_weights),
    )
    return config


@lru_cache(maxsize=1)
def get_threat_config() -> ThreatConfig:
    """Return the active (cached) configuration snapshot."""
    return build_threat_config()


def reload_threat_config() -> ThreatConfig:
    """Drop cached config and build a fresh snapshot.

    The swap is a single reference replacement; callers holding the old
    snapshot keep using it until they ask again.
    """
    load_config.cache_clear()
    get_threat_config.cache_clear()
    return get_threat_config()
