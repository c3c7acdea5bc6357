"""Head/tail text squeezing for oversized prompt inputs.

Both squeezers keep the opening and the ending of a text and drop the
middle, so problem statements and conclusions survive while long bodies
fit a word or token budget.
"""

# Standard Library
import math

import tiktoken


FENCE_MARKERS = ("```", '"""')
MAX_WORD_CHARS = 150
TOKENIZER_NAME = "cl100k_base"

_ENCODING = None


#============================================
def get_encoding():
	"""
	Return the shared tiktoken encoding, loading it on first use.
	"""
	global _ENCODING
	if _ENCODING is None:
		_ENCODING = tiktoken.get_encoding(TOKENIZER_NAME)
	return _ENCODING


#============================================
def strip_quoted_blocks(text: str) -> str:
	"""
	Remove fenced blocks and over-long words, keeping line structure.

	A line holding a triple-backtick or triple-quote marker toggles the
	fenced state and is itself dropped.
	"""
	kept_lines = []
	inside_quote = False
	for line in (text or "").splitlines():
		if any(marker in line for marker in FENCE_MARKERS):
			inside_quote = not inside_quote
			continue
		if inside_quote:
			continue
		words = [word for word in line.split() if len(word) < MAX_WORD_CHARS]
		kept_lines.append(" ".join(words))
	return "\n".join(kept_lines)


#============================================
def split_head_tail(total: int, budget: int, split: float) -> tuple[int, int]:
	"""
	Compute how many units to keep from the head and from the tail.

	Args:
		total: number of units (words or tokens) in the input.
		budget: maximum units to keep.
		split: fraction of the budget given to the head, clamped to [0, 1].

	Returns:
		(head, tail) with head + tail <= min(total, budget). When split < 1
		and the budget allows two units, the tail keeps at least one.
	"""
	if budget <= 0 or total <= 0:
		return 0, 0
	budget = min(budget, total)
	split = min(1.0, max(0.0, split))
	head = min(budget, math.ceil(round(budget * split, 9)))
	tail = budget - head
	if split < 1.0 and budget >= 2 and tail < 1:
		head = budget - 1
		tail = 1
	return head, tail


#============================================
def squeeze_remove_quoted(text: str, max_words: int, split: float) -> str:
	"""
	Strip quoted blocks and long words, then fit text to a word budget.

	Args:
		text: raw post or comment body.
		max_words: word budget for the result.
		split: fraction of the budget kept from the start of the text.

	Returns:
		The cleaned text when it fits, otherwise the first and last words
		of the cleaned text joined by single spaces.
	"""
	cleaned = strip_quoted_blocks(text)
	words = cleaned.split()
	if len(words) <= max_words:
		return cleaned
	if max_words <= 0:
		return ""
	head, tail = split_head_tail(len(words), max_words, split)
	kept = words[:head]
	if tail > 0:
		kept.extend(words[-tail:])
	return " ".join(kept)


#============================================
def squeeze_token_ids(token_ids: list[int], max_tokens: int, split: float) -> list[int]:
	"""
	Keep a head slice and a tail slice of a token id sequence.
	"""
	if len(token_ids) < max_tokens:
		return list(token_ids)
	head, tail = split_head_tail(len(token_ids), max_tokens, split)
	kept = list(token_ids[:head])
	if tail > 0:
		kept.extend(token_ids[len(token_ids) - tail:])
	return kept


#============================================
def count_tokens(text: str, encoding=None) -> int:
	"""
	Count tokens in text with the shared tokenizer.
	"""
	encoder = encoding or get_encoding()
	return len(encoder.encode_ordinary(text or ""))


#============================================
def squeeze_post_texts(text: str, max_tokens: int, split: float, encoding=None) -> str:
	"""
	Fit text to a token budget, keeping head and tail tokens.

	Args:
		text: text to squeeze.
		max_tokens: token budget for the result.
		split: fraction of the budget kept from the start of the text.
		encoding: tokenizer with encode_ordinary/decode; defaults to
			tiktoken cl100k_base.

	Returns:
		The input unchanged when it is under budget, otherwise the decoded
		head and tail token slices.
	"""
	encoder = encoding or get_encoding()
	token_ids = encoder.encode_ordinary(text or "")
	if len(token_ids) < max_tokens:
		return text
	kept = squeeze_token_ids(token_ids, max_tokens, split)
	if not kept:
		return ""
	return encoder.decode(kept)
