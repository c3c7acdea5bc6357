import os
import sys

import pytest

import report_fakes


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import text_squeezer


#============================================
def make_long_text(filler_count: int) -> str:
	"""
	Build HEAD filler... TAIL with distinct filler words.
	"""
	filler = [f"w{index}" for index in range(filler_count)]
	return " ".join(["HEAD"] + filler + ["TAIL"])


#============================================
def test_remove_quoted_small_input_unchanged() -> None:
	"""
	Text under the word budget without fences should come back as-is.
	"""
	text = "Parser crashes on empty input.\nSteps: run parse on an empty file."
	assert text_squeezer.squeeze_remove_quoted(text, 400, 0.7) == text


#============================================
def test_remove_quoted_drops_fenced_blocks() -> None:
	"""
	Fenced blocks and their marker lines should be removed.
	"""
	text = "before\n```python\nsecret = 1\n```\nafter\n\"\"\"\nquoted\n\"\"\"\nend"
	result = text_squeezer.squeeze_remove_quoted(text, 400, 0.7)
	assert result.split() == ["before", "after", "end"]
	assert "secret" not in result
	assert "quoted" not in result


#============================================
def test_remove_quoted_drops_overlong_words() -> None:
	"""
	Words of 150 characters or more should be dropped.
	"""
	blob = "x" * 150
	short = "y" * 149
	result = text_squeezer.squeeze_remove_quoted(f"keep {blob} {short}", 400, 0.7)
	assert result.split() == ["keep", short]


#============================================
def test_remove_quoted_keeps_head_and_tail() -> None:
	"""
	Long input keeps the first 70% and last 30% of the word budget.
	"""
	text = make_long_text(1000)
	result = text_squeezer.squeeze_remove_quoted(text, 100, 0.7)
	words = result.split()
	source_words = text.split()
	assert len(words) == 100
	assert words[0] == "HEAD"
	assert words[-1] == "TAIL"
	assert words[:70] == source_words[:70]
	assert words[70:] == source_words[-30:]


#============================================
def test_remove_quoted_zero_budget_is_empty() -> None:
	"""
	A zero word budget should give an empty string for non-empty input.
	"""
	assert text_squeezer.squeeze_remove_quoted("one two three", 0, 0.5) == ""


#============================================
def test_split_head_tail_clamps() -> None:
	"""
	Head/tail sizes stay in range and keep a tail when split < 1.
	"""
	assert text_squeezer.split_head_tail(100, 10, 0.7) == (7, 3)
	assert text_squeezer.split_head_tail(100, 10, 1.0) == (10, 0)
	assert text_squeezer.split_head_tail(100, 5, 0.99) == (4, 1)
	assert text_squeezer.split_head_tail(100, 0, 0.5) == (0, 0)
	assert text_squeezer.split_head_tail(100, 1, 0.4) == (1, 0)
	assert text_squeezer.split_head_tail(100, 10, 1.5) == (10, 0)
	assert text_squeezer.split_head_tail(100, 10, -1.0) == (0, 10)


#============================================
def test_post_texts_under_budget_unchanged() -> None:
	"""
	Input with fewer tokens than the budget is returned exactly.
	"""
	encoding = report_fakes.FakeEncoding()
	text = "short discussion body\nwith two lines"
	assert text_squeezer.squeeze_post_texts(text, 50, 0.4, encoding=encoding) == text


#============================================
def test_post_texts_round_trips_head_and_tail_tokens() -> None:
	"""
	Squeezed output re-tokenizes to the two ends of the original tokens.
	"""
	encoding = report_fakes.FakeEncoding()
	text = make_long_text(500)
	token_ids = encoding.encode_ordinary(text)
	result = text_squeezer.squeeze_post_texts(text, 40, 0.4, encoding=encoding)
	result_ids = encoding.encode_ordinary(result)
	head, tail = text_squeezer.split_head_tail(len(token_ids), 40, 0.4)
	assert len(result_ids) <= 40
	assert result_ids == token_ids[:head] + token_ids[len(token_ids) - tail:]
	assert result.startswith("HEAD")
	assert result.endswith("TAIL")


#============================================
def test_post_texts_non_positive_budget_is_empty() -> None:
	"""
	A budget of zero tokens yields an empty string.
	"""
	encoding = report_fakes.FakeEncoding()
	assert text_squeezer.squeeze_post_texts("a b c", 0, 0.5, encoding=encoding) == ""


#============================================
def test_squeeze_token_ids_never_lengthens() -> None:
	"""
	Token slicing never returns more ids than it was given.
	"""
	token_ids = list(range(30))
	for budget in (0, 1, 2, 29, 30, 31, 100):
		kept = text_squeezer.squeeze_token_ids(token_ids, budget, 0.4)
		assert len(kept) <= len(token_ids)
		if budget < len(token_ids):
			assert len(kept) <= max(budget, 0)


#============================================
def test_post_texts_with_cl100k_base() -> None:
	"""
	The default tokenizer keeps output within the token budget.
	"""
	try:
		encoding = text_squeezer.get_encoding()
	except Exception as error:
		pytest.skip(f"cl100k_base unavailable: {error}")
	text = make_long_text(2000)
	result = text_squeezer.squeeze_post_texts(text, 120, 0.4)
	assert text_squeezer.count_tokens(result, encoding) <= 121
	assert result.startswith("HEAD")


#============================================
def test_remove_quoted_splits_like_token_squeeze() -> None:
	"""
	Word and token squeezing share one head/tail split, rounding the head up.
	"""
	text = make_long_text(50)
	source_words = text.split()
	result = text_squeezer.squeeze_remove_quoted(text, 10, 0.75)
	words = result.split()
	assert text_squeezer.split_head_tail(len(source_words), 10, 0.75) == (8, 2)
	assert words == source_words[:8] + source_words[-2:]
	assert words[-1] == "TAIL"
