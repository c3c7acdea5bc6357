"""Extract the flat correlation summary from stage-2 model output."""

# Standard Library
import json
import re


SUMMARY_KEYS = ("impactful", "alignment", "patterns", "synergy", "significance")

# "key": "value" with escaped quotes allowed inside the value
KEY_VALUE_RE = re.compile(r'"(?P<key>[A-Za-z_]+)"\s*:\s*"(?P<value>(?:[^"\\]|\\.)*)"')
FENCE_RE = re.compile(r"^```[A-Za-z]*\s*|\s*```$")


#============================================
def _strict_parse(raw_text: str) -> dict[str, str] | None:
	text = FENCE_RE.sub("", raw_text.strip())
	start = text.find("{")
	end = text.rfind("}")
	if start < 0 or end <= start:
		return None
	try:
		parsed = json.loads(text[start:end + 1])
	except json.JSONDecodeError:
		return None
	if not isinstance(parsed, dict):
		return None
	summary = {}
	for key in SUMMARY_KEYS:
		value = parsed.get(key)
		if isinstance(value, str):
			summary[key] = value
	return summary


#============================================
def _tolerant_parse(raw_text: str) -> dict[str, str]:
	summary = {}
	for match in KEY_VALUE_RE.finditer(raw_text):
		key = match.group("key")
		if key not in SUMMARY_KEYS or key in summary:
			continue
		value = match.group("value")
		try:
			value = json.loads('"' + value + '"')
		except json.JSONDecodeError:
			value = value.replace('\\"', '"')
		summary[key] = value
	return summary


#============================================
def parse_structured_summary(raw_text: str) -> dict[str, str]:
	"""
	Parse stage-2 output into the fixed summary keys.

	Strict JSON is tried first; when that fails a line scanner picks up
	"key": "value" pairs. Non-string values are ignored.

	Args:
		raw_text: raw model output.

	Returns:
		Mapping holding only keys from SUMMARY_KEYS, possibly empty.
	"""
	if not raw_text:
		return {}
	summary = _strict_parse(raw_text)
	if summary:
		return summary
	return _tolerant_parse(raw_text)


#============================================
def flatten_summary(raw_text: str) -> str:
	"""
	Join summary values in key order with single spaces.

	Returns "" when nothing could be parsed.
	"""
	summary = parse_structured_summary(raw_text)
	parts = []
	for key in SUMMARY_KEYS:
		value = summary.get(key, "").strip()
		if value:
			parts.append(value)
	return " ".join(parts)
