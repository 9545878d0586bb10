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

"""Tests for configuration loading and validation."""
import os
from unittest.mock import patch

import pytest

from ryzena_threat.config import (
    DEFAULT_SIGNAL_WEIGHTS,
    ThreatConfig,
    build_threat_config,
    get_threat_config,
    load_config,
    reload_threat_config,
)
from ryzena_threat.errors import ConfigurationError


class TestValidation:

    def test_defaults_are_valid(self):
        config = ThreatConfig()
        assert config.phishing_threshold == 0.7
        assert config.url_high_risk_threshold == 0.8
        assert config.max_urls == 10
        assert config.signal_weights == DEFAULT_SIGNAL_WEIGHTS

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_threshold_out_of_range(self, value):
        with pytest.raises(ConfigurationError):
            ThreatConfig(phishing_threshold=value)

    def test_threshold_must_be_number(self):
        with pytest.raises(ConfigurationError):
            ThreatConfig(url_high_risk_threshold="high")

    @pytest.mark.parametrize("weight", [0, -0.2, 1.01])
    def test_weight_out_of_range(self, weight):
        weights = {**DEFAULT_SIGNAL_WEIGHTS, "urgency_keywords": weight}
        with pytest.raises(ConfigurationError):
            ThreatConfig(signal_weights=weights)

    def test_unknown_signal_id(self):
        weights = {**DEFAULT_SIGNAL_WEIGHTS, "made_up": 0.1}
        with pytest.raises(ConfigurationError) as exc_info:
            ThreatConfig(signal_weights=weights)
        assert exc_info.value.details["signal_ids"] == ["made_up"]

    def test_missing_signal_id(self):
        with pytest.raises(ConfigurationError):
            ThreatConfig(signal_weights={"urgency_keywords": 0.1})

    def test_negative_max_urls(self):
        with pytest.raises(ConfigurationError):
            ThreatConfig(max_urls=-1)

    def test_bad_regex(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ThreatConfig(malicious_patterns=("login[",))
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_weights_are_read_only(self):
        config = ThreatConfig()
        with pytest.raises(TypeError):
            config.signal_weights["urgency_keywords"] = 5.0
        assert config.signal_weight("urgency_keywords") == 0.15

    def test_caller_dict_does_not_leak_into_snapshot(self):
        weights = dict(DEFAULT_SIGNAL_WEIGHTS)
        config = ThreatConfig(signal_weights=weights)
        weights["urgency_keywords"] = 5.0
        assert config.signal_weight("urgency_keywords") == 0.15

    def test_replace_does_not_share_weights(self):
        config = ThreatConfig()
        updated = config.replace(phishing_threshold=0.5)
        assert updated.signal_weights is not config.signal_weights
        assert updated.signal_weights == config.signal_weights

    def test_default_weights_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SIGNAL_WEIGHTS["failed_auth"] = 0.9

    @pytest.mark.parametrize("field_name,value", [
        ("urgency_keywords", "urgent"),
        ("trusted_domains", "example.org"),
        ("urgency_keywords", ["urgent", ""]),
        ("brand_names", ["paypal", 42]),
    ])
    def test_collection_must_be_strings(self, field_name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            ThreatConfig.from_dict({field_name: value})
        assert exc_info.value.details["field"] == field_name

    def test_replace_revalidates(self):
        config = ThreatConfig()
        with pytest.raises(ConfigurationError):
            config.replace(phishing_threshold=2.0)
        assert config.phishing_threshold == 0.7

    def test_replace_returns_new_snapshot(self):
        config = ThreatConfig()
        updated = config.replace(phishing_threshold=0.5)
        assert updated.phishing_threshold == 0.5
        assert config.phishing_threshold == 0.7


class TestFromDict:

    def test_empty(self):
        assert ThreatConfig.from_dict({}) == ThreatConfig()
        assert ThreatConfig.from_dict(None) == ThreatConfig()

    def test_partial_weights_are_merged(self):
        config = ThreatConfig.from_dict({"signal_weights": {"failed_auth": 0.3}})
        assert config.signal_weight("failed_auth") == 0.3
        assert config.signal_weight("urgency_keywords") == 0.15

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            ThreatConfig.from_dict({"phishing_treshold": 0.5})

    def test_weights_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            ThreatConfig.from_dict({"signal_weights": [0.1, 0.2]})

    @pytest.mark.parametrize("field_name", [
        "urgency_keywords", "malicious_patterns", "url_suspicious_tlds", "executable_extensions",
    ])
    def test_null_collection_rejected(self, field_name):
        with pytest.raises(ConfigurationError):
            ThreatConfig.from_dict({field_name: None})

    def test_string_extension_set_rejected(self):
        # A bare string must not be split into single-character extensions
        with pytest.raises(ConfigurationError):
            ThreatConfig.from_dict({"executable_extensions": "exe"})

    def test_string_keywords_from_yaml_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("threat:\n  urgency_keywords: urgent\n")
        with patch.dict(os.environ, {"THREAT_CONFIG_PATH": str(path)}):
            load_config.cache_clear()
            try:
                with pytest.raises(ConfigurationError):
                    build_threat_config(load_config())
            finally:
                load_config.cache_clear()

    def test_lists_are_coerced(self):
        config = ThreatConfig.from_dict({
            "trusted_domains": ["example.org"],
            "url_suspicious_tlds": [".ZIP", "mov"],
        })
        assert config.trusted_domains == ("example.org",)
        assert config.url_suspicious_tlds == frozenset({"zip", "mov"})

    def test_to_dict_round_trip(self):
        config = ThreatConfig(phishing_threshold=0.6)
        assert ThreatConfig.from_dict(config.to_dict()) == config


class TestLoading:

    def setup_method(self):
        load_config.cache_clear()
        get_threat_config.cache_clear()

    def teardown_method(self):
        load_config.cache_clear()
        get_threat_config.cache_clear()

    def test_load_from_env_path(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("threat:\n  phishing_threshold: 0.55\n  max_urls: 3\n")
        with patch.dict(os.environ, {"THREAT_CONFIG_PATH": str(path)}):
            raw = load_config()
            config = build_threat_config(raw)
        assert raw["threat"]["phishing_threshold"] == 0.55
        assert config.phishing_threshold == 0.55
        assert config.max_urls == 3

    def test_env_overrides_yaml(self):
        raw = {"threat": {"phishing_threshold": 0.55}}
        with patch.dict(os.environ, {
            "PHISHING_THRESHOLD": "0.9",
            "URL_HIGH_RISK_THRESHOLD": "0.65",
        }):
            config = build_threat_config(raw)
        assert config.phishing_threshold == 0.9
        assert config.url_high_risk_threshold == 0.65

    def test_unparsable_env(self):
        with patch.dict(os.environ, {"PHISHING_THRESHOLD": "lots"}):
            with pytest.raises(ConfigurationError):
                build_threat_config({})

    def test_env_value_is_validated(self):
        with patch.dict(os.environ, {"PHISHING_THRESHOLD": "7"}):
            with pytest.raises(ConfigurationError):
                build_threat_config({})

    def test_threat_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            build_threat_config({"threat": ["nope"]})

    def test_invalid_yaml_rejected_before_analysis(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("threat:\n  signal_weights:\n    urgency_keywords: -1\n")
        with patch.dict(os.environ, {"THREAT_CONFIG_PATH": str(path)}):
            with pytest.raises(ConfigurationError):
                get_threat_config()

    def test_reload_swaps_snapshot(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("threat:\n  phishing_threshold: 0.6\n")
        with patch.dict(os.environ, {"THREAT_CONFIG_PATH": str(path)}):
            first = get_threat_config()
            path.write_text("threat:\n  phishing_threshold: 0.4\n")
            assert get_threat_config() is first
            second = reload_threat_config()
        assert first.phishing_threshold == 0.6
        assert second.phishing_threshold == 0.4
