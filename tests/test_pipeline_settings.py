import os
import sys

import pytest


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import pipeline_settings


#============================================
def test_load_settings_missing_file(tmp_path) -> None:
	"""
	Missing settings file should return empty settings.
	"""
	settings, resolved_path = pipeline_settings.load_settings(str(tmp_path / "missing.yaml"))
	assert settings == {}
	assert resolved_path.endswith("missing.yaml")


#============================================
def test_load_settings_reads_yaml(tmp_path) -> None:
	"""
	YAML settings should be parsed into nested mapping values.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text(
		"github:\n"
		"  token: abc\n"
		"report:\n"
		"  days: 14\n",
		encoding="utf-8",
	)
	settings, _ = pipeline_settings.load_settings(str(settings_path))
	assert pipeline_settings.get_setting_str(settings, ["github", "token"], "") == "abc"
	assert pipeline_settings.get_setting_int(settings, ["report", "days"], 7) == 14


#============================================
def test_load_settings_rejects_non_mapping(tmp_path) -> None:
	"""
	A YAML list at top level is not a settings mapping.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("- one\n- two\n", encoding="utf-8")
	with pytest.raises(RuntimeError):
		pipeline_settings.load_settings(str(settings_path))


#============================================
def test_get_setting_int_invalid_value_raises() -> None:
	"""
	Invalid integer setting should raise RuntimeError.
	"""
	settings = {"report": {"days": "abc"}}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_setting_int(settings, ["report", "days"], 7)


#============================================
def test_get_setting_bool_text_values() -> None:
	settings = {"flags": {"on": "yes", "off": "0"}}
	assert pipeline_settings.get_setting_bool(settings, ["flags", "on"], False) is True
	assert pipeline_settings.get_setting_bool(settings, ["flags", "off"], True) is False
	assert pipeline_settings.get_setting_bool(settings, ["flags", "missing"], True) is True


#============================================
def test_get_report_weights_defaults_and_overrides() -> None:
	"""
	Missing weights fall back to the default table.
	"""
	settings = {"report": {"weights": {"issues": 5}}}
	weights = pipeline_settings.get_report_weights(settings)
	assert weights["issues"] == 5.0
	assert weights["commits"] == 4.0
	assert set(weights) == {"profile", "commits", "issues", "discussions"}


#============================================
def test_get_report_weights_negative_raises() -> None:
	settings = {"report": {"weights": {"commits": -1}}}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_report_weights(settings)


#============================================
def test_get_enabled_llm_transport_single_enabled() -> None:
	"""
	Exactly one enabled provider should be selected.
	"""
	settings = {
		"llm": {
			"providers": {
				"openai": {"enabled": True},
				"ollama": {"enabled": False},
			}
		}
	}
	transport = pipeline_settings.get_enabled_llm_transport(settings)
	assert transport == "openai"


#============================================
def test_get_enabled_llm_transport_multiple_enabled_raises() -> None:
	"""
	More than one enabled provider should raise RuntimeError.
	"""
	settings = {
		"llm": {
			"providers": {
				"openai": {"enabled": True},
				"ollama": {"enabled": True},
			}
		}
	}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_enabled_llm_transport(settings)


#============================================
def test_get_enabled_llm_transport_none_enabled_is_auto() -> None:
	"""
	No enabled provider means automatic fallback order.
	"""
	settings = {"llm": {"providers": {"ollama": {"enabled": "off"}}}}
	assert pipeline_settings.get_enabled_llm_transport(settings) == "auto"
	assert pipeline_settings.get_enabled_llm_transport({}) == "auto"


#============================================
def test_get_llm_provider_model_prefers_provider_value() -> None:
	"""
	Provider model wins over the shared llm.model value.
	"""
	settings = {
		"llm": {
			"model": "shared-model",
			"providers": {
				"ollama": {"enabled": True, "model": "qwen2.5:7b"},
				"openai": {"enabled": False},
			},
		}
	}
	assert pipeline_settings.get_llm_provider_model(settings, "ollama") == "qwen2.5:7b"
	assert pipeline_settings.get_llm_provider_model(settings, "openai") == "shared-model"
