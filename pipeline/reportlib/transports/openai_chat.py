"""
OpenAI-compatible chat completions transport.
"""

from __future__ import annotations

# Standard Library
import os

import openai

# local repo modules
from reportlib.llm_errors import ContextWindowError
from reportlib.llm_errors import GenerationError
from reportlib.llm_errors import TransportUnavailableError


DEFAULT_MODEL = "gpt-3.5-turbo-1106"


class OpenAIChatTransport:
	name = "OpenAI"

	def __init__(
		self,
		model: str = DEFAULT_MODEL,
		base_url: str = "",
		api_key: str = "",
		temperature: float = 0.2,
	) -> None:
		self.model = model or DEFAULT_MODEL
		self.base_url = base_url
		self.api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
		self.temperature = float(temperature)
		self._client = None

	def _get_client(self) -> openai.OpenAI:
		if not self.api_key:
			raise TransportUnavailableError(
				"OpenAI transport needs OPENAI_API_KEY or llm.providers.openai.api_key."
			)
		if self._client is None:
			kwargs = {"api_key": self.api_key}
			if self.base_url:
				kwargs["base_url"] = self.base_url
			self._client = openai.OpenAI(**kwargs)
		return self._client

	def generate_chat(
		self,
		messages: list[dict[str, str]],
		*,
		purpose: str,
		max_tokens: int,
	) -> str:
		client = self._get_client()
		try:
			response = client.chat.completions.create(
				model=self.model,
				messages=messages,
				max_tokens=max_tokens,
				temperature=self.temperature,
			)
		except openai.APIConnectionError as exc:
			raise TransportUnavailableError("OpenAI endpoint is unreachable.") from exc
		except openai.BadRequestError as exc:
			if "context_length_exceeded" in str(exc) or "context length" in str(exc).lower():
				raise ContextWindowError(
					f"OpenAI context window exceeded during {purpose}."
				) from exc
			raise GenerationError(f"OpenAI rejected request during {purpose}: {exc}") from exc
		except openai.APIError as exc:
			raise GenerationError(f"OpenAI call failed during {purpose}: {exc}") from exc
		content = ""
		if response.choices:
			content = response.choices[0].message.content or ""
		if not content:
			raise GenerationError(f"OpenAI returned empty content during {purpose}")
		return content
