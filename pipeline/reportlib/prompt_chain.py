"""Two-stage chat generation over one conversation."""

# Standard Library
import dataclasses

# local repo modules
from reportlib import llm_client
from reportlib.report_errors import ChainFailureError


#============================================
@dataclasses.dataclass(frozen=True)
class GenerationCaps:
	stage1: int
	stage2: int


# (upper entry count inclusive, caps); the last row covers everything above
CAPS_TABLE = (
	(3, GenerationCaps(384, 96)),
	(14, GenerationCaps(512, 350)),
)
LARGE_CAPS = GenerationCaps(1024, 500)


#============================================
def select_generation_caps(entry_count: int) -> GenerationCaps:
	"""
	Scale output caps with the number of input entries.
	"""
	for upper_bound, caps in CAPS_TABLE:
		if entry_count <= upper_bound:
			return caps
	return LARGE_CAPS


#============================================
class PromptChain:
	"""
	Run single-stage or two-stage generation against a client.

	The client only needs generate_chat(messages, purpose=, max_tokens=).
	Any RuntimeError or empty reply at either stage fails the whole chain.
	"""

	def __init__(self, client, log_fn=None):
		self.client = client
		self.log_fn = log_fn

	#============================================
	def _log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def _send(self, messages: list[dict[str, str]], max_tokens: int, purpose: str) -> str:
		try:
			reply = self.client.generate_chat(
				messages,
				purpose=purpose,
				max_tokens=max_tokens,
			)
		except RuntimeError as error:
			self._log(f"Generation failed for {purpose}: {error}")
			raise ChainFailureError(f"generation failed for {purpose}") from error
		if not (reply or "").strip():
			self._log(f"Generation returned no content for {purpose}")
			raise ChainFailureError(f"empty generation for {purpose}")
		return reply

	#============================================
	def run_single(
		self,
		system_prompt: str,
		user_prompt: str,
		max_tokens: int,
		purpose: str,
	) -> str:
		"""
		Run one system + user exchange and return the reply.
		"""
		messages = llm_client.build_messages(system_prompt, user_prompt)
		return self._send(messages, max_tokens, purpose)

	#============================================
	def run(
		self,
		system_prompt: str,
		user_prompt_1: str,
		user_prompt_2: str,
		caps: GenerationCaps,
		purpose: str,
	) -> str:
		"""
		Run the analysis stage, then re-prompt the same conversation.

		Args:
			system_prompt: system message for the conversation.
			user_prompt_1: first user turn with the raw evidence.
			user_prompt_2: follow-up turn asking to restructure the draft.
			caps: output caps for each stage.
			purpose: label used in logs and errors.

		Returns:
			Raw stage-2 text; parsing is left to the caller.

		Raises:
			ChainFailureError: when either stage errors or returns nothing.
		"""
		messages = llm_client.build_messages(system_prompt, user_prompt_1)
		draft = self._send(messages, caps.stage1, f"{purpose} stage 1")
		messages.append({"role": "assistant", "content": draft})
		messages.append({"role": "user", "content": user_prompt_2})
		return self._send(messages, caps.stage2, f"{purpose} stage 2")
