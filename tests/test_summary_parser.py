import os
import sys


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import summary_parser


#============================================
def test_flatten_strict_json_in_key_order() -> None:
	"""
	Values are joined in the fixed key order, skipping missing keys.
	"""
	raw = (
		'{"significance": "D.", "impactful": "A.", '
		'"alignment": "B.", "synergy": "C."}'
	)
	assert summary_parser.flatten_summary(raw) == "A. B. C. D."


#============================================
def test_flatten_code_fenced_json() -> None:
	"""
	Markdown code fences around the JSON are tolerated.
	"""
	raw = '```json\n{"impactful": "A.", "patterns": "P."}\n```'
	assert summary_parser.flatten_summary(raw) == "A. P."


#============================================
def test_nested_and_non_string_values_are_ignored() -> None:
	"""
	Nested objects, lists and numbers never reach the output.
	"""
	raw = '{"impactful": {"x": "y"}, "alignment": ["a"], "patterns": 3, "synergy": "S."}'
	assert summary_parser.parse_structured_summary(raw) == {"synergy": "S."}
	assert summary_parser.flatten_summary(raw) == "S."


#============================================
def test_tolerant_scan_when_json_is_broken() -> None:
	"""
	Invalid JSON falls back to scanning "key": "value" pairs.
	"""
	raw = (
		'Here is the summary:\n'
		'{\n'
		'"impactful": "Shipped the \\"fast\\" parser.",\n'
		'"alignment": "Fits the roadmap.",\n'
		'"unknown": "ignored",\n'
		'}'
	)
	summary = summary_parser.parse_structured_summary(raw)
	assert summary == {
		"impactful": 'Shipped the "fast" parser.',
		"alignment": "Fits the roadmap.",
	}


#============================================
def test_unparseable_output_flattens_to_empty() -> None:
	"""
	Output with no known keys gives an empty string, not an error.
	"""
	assert summary_parser.flatten_summary("The model refused.") == ""
	assert summary_parser.flatten_summary("") == ""
	assert summary_parser.flatten_summary('{"other": "x"}') == ""
