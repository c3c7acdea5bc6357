import os
import sys

import pytest


PIPELINE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from reportlib import prompt_chain
from reportlib.llm_errors import GenerationError
from reportlib.report_errors import ChainFailureError


#============================================
class ScriptedClient:
	"""
	Client returning scripted replies in order; exceptions are raised.
	"""

	def __init__(self, replies):
		self.replies = list(replies)
		self.calls = []

	def generate_chat(self, messages, *, purpose, max_tokens):
		self.calls.append({
			"messages": [dict(message) for message in messages],
			"purpose": purpose,
			"max_tokens": max_tokens,
		})
		reply = self.replies[len(self.calls) - 1]
		if isinstance(reply, Exception):
			raise reply
		return reply


#============================================
def test_select_generation_caps_tiers() -> None:
	"""
	Caps grow with the number of input entries.
	"""
	small = prompt_chain.GenerationCaps(384, 96)
	medium = prompt_chain.GenerationCaps(512, 350)
	large = prompt_chain.GenerationCaps(1024, 500)
	assert prompt_chain.select_generation_caps(0) == small
	assert prompt_chain.select_generation_caps(3) == small
	assert prompt_chain.select_generation_caps(4) == medium
	assert prompt_chain.select_generation_caps(14) == medium
	assert prompt_chain.select_generation_caps(15) == large
	assert prompt_chain.select_generation_caps(400) == large


#============================================
def test_run_appends_draft_and_second_prompt() -> None:
	"""
	Stage 2 resends the whole conversation with the draft and follow-up.
	"""
	client = ScriptedClient(["draft analysis", '{"impactful": "x"}'])
	chain = prompt_chain.PromptChain(client)
	caps = prompt_chain.GenerationCaps(512, 350)
	result = chain.run("sys", "user one", "user two", caps, "correlate")
	assert result == '{"impactful": "x"}'
	assert len(client.calls) == 2
	assert client.calls[0]["max_tokens"] == 512
	assert client.calls[1]["max_tokens"] == 350
	roles = [message["role"] for message in client.calls[1]["messages"]]
	assert roles == ["system", "user", "assistant", "user"]
	assert client.calls[1]["messages"][2]["content"] == "draft analysis"
	assert client.calls[1]["messages"][3]["content"] == "user two"


#============================================
def test_stage_one_error_skips_stage_two() -> None:
	"""
	A stage-1 error fails the chain after exactly one call.
	"""
	client = ScriptedClient([GenerationError("boom"), "never used"])
	chain = prompt_chain.PromptChain(client)
	with pytest.raises(ChainFailureError):
		chain.run("sys", "u1", "u2", prompt_chain.GenerationCaps(384, 96), "correlate")
	assert len(client.calls) == 1


#============================================
def test_stage_one_empty_skips_stage_two() -> None:
	"""
	An empty stage-1 reply fails the chain after exactly one call.
	"""
	client = ScriptedClient(["   ", "never used"])
	chain = prompt_chain.PromptChain(client)
	with pytest.raises(ChainFailureError):
		chain.run("sys", "u1", "u2", prompt_chain.GenerationCaps(384, 96), "correlate")
	assert len(client.calls) == 1


#============================================
def test_stage_two_empty_fails_whole_chain() -> None:
	"""
	No partial result is returned when stage 2 is empty.
	"""
	client = ScriptedClient(["draft", ""])
	chain = prompt_chain.PromptChain(client)
	with pytest.raises(ChainFailureError):
		chain.run("sys", "u1", "u2", prompt_chain.GenerationCaps(384, 96), "correlate")
	assert len(client.calls) == 2


#============================================
def test_run_single_uses_system_and_user() -> None:
	"""
	Single-stage runs send one system and one user message.
	"""
	client = ScriptedClient(["summary"])
	chain = prompt_chain.PromptChain(client)
	assert chain.run_single("sys", "user", 128, "commit abc") == "summary"
	assert client.calls[0]["max_tokens"] == 128
	assert [m["role"] for m in client.calls[0]["messages"]] == ["system", "user"]
