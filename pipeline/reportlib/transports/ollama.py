"""
Ollama chat transport.
"""

from __future__ import annotations

# Standard Library
import json
import random
import time
import urllib.error
import urllib.parse
import urllib.request

# local repo modules
from reportlib.llm_errors import ContextWindowError
from reportlib.llm_errors import GenerationError
from reportlib.llm_errors import TransportUnavailableError


#============================================
def _is_context_window_text(text: str) -> bool:
	"""
	Return True when an error body signals a context window overflow.
	"""
	lower = (text or "").lower()
	if "context window" in lower or "context length" in lower:
		return True
	return False


class OllamaTransport:
	name = "Ollama"

	def __init__(
		self,
		model: str,
		base_url: str = "http://localhost:11434",
		timeout_seconds: int = 120,
	) -> None:
		self.model = model
		self.base_url = base_url.rstrip("/")
		self.timeout_seconds = int(timeout_seconds)

	def _validated_chat_endpoint(self) -> str:
		"""
		Build and validate the Ollama chat endpoint URL.
		"""
		parsed = urllib.parse.urlparse(self.base_url)
		if parsed.scheme not in {"http", "https"}:
			raise TransportUnavailableError("Ollama base_url must use http or https.")
		if not parsed.netloc:
			raise TransportUnavailableError("Ollama base_url must include a host.")
		return urllib.parse.urljoin(self.base_url + "/", "api/chat")

	def generate_chat(
		self,
		messages: list[dict[str, str]],
		*,
		purpose: str,
		max_tokens: int,
	) -> str:
		payload: dict[str, object] = {
			"model": self.model,
			"messages": messages,
			"stream": False,
			"options": {"num_predict": max_tokens},
		}
		time.sleep(random.random())
		request = urllib.request.Request(
			self._validated_chat_endpoint(),
			data=json.dumps(payload).encode("utf-8"),
			headers={"Content-Type": "application/json"},
			method="POST",
		)
		try:
			with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:  # nosec B310
				response_body = response.read()
		except urllib.error.HTTPError as exc:
			error_text = exc.read().decode("utf-8", errors="replace")
			if _is_context_window_text(error_text):
				raise ContextWindowError(
					f"Ollama context window exceeded during {purpose}."
				) from exc
			raise GenerationError(f"Ollama chat error during {purpose}: status {exc.code}") from exc
		except urllib.error.URLError as exc:
			raise TransportUnavailableError("Ollama is unreachable.") from exc
		try:
			parsed = json.loads(response_body.decode("utf-8"))
			assistant_message = (parsed.get("message") or {}).get("content") or ""
		except (ValueError, AttributeError) as exc:
			raise GenerationError(f"Ollama chat returned malformed JSON during {purpose}") from exc
		if not assistant_message:
			raise GenerationError(f"Ollama chat returned empty content during {purpose}")
		return assistant_message
