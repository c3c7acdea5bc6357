"""
Generation client that routes chat requests through configured transports.
"""

# Standard Library
import threading

# local repo modules
from reportlib import pipeline_settings
from reportlib.llm_errors import TransportUnavailableError
from reportlib.transports.ollama import OllamaTransport
from reportlib.transports.openai_chat import OpenAIChatTransport


#============================================
def build_messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
	"""
	Build a system + user chat message list.
	"""
	messages = []
	if system_prompt:
		messages.append({"role": "system", "content": system_prompt})
	messages.append({"role": "user", "content": user_prompt})
	return messages


#============================================
class LLMClient:
	"""
	Try each transport in order until one is available.

	Only TransportUnavailableError moves on to the next transport; any other
	failure is final for the call.
	"""

	def __init__(self, transports: list, log_fn=None):
		if not transports:
			raise ValueError("LLMClient needs at least one transport")
		self.transports = list(transports)
		self.log_fn = log_fn
		self._lock = threading.Lock()
		self._call_count = 0

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	@property
	def call_count(self) -> int:
		return self._call_count

	#============================================
	def generate_chat(self, messages: list[dict[str, str]], *, purpose: str, max_tokens: int) -> str:
		"""
		Send a full conversation and return the assistant reply.
		"""
		with self._lock:
			self._call_count += 1
		last_error = None
		for transport in self.transports:
			try:
				return transport.generate_chat(
					messages,
					purpose=purpose,
					max_tokens=max_tokens,
				)
			except TransportUnavailableError as error:
				self.log(f"{transport.name} unavailable for {purpose}: {error}")
				last_error = error
		raise TransportUnavailableError(
			f"No LLM transport available for {purpose}."
		) from last_error

	#============================================
	def generate(
		self,
		system_prompt: str,
		user_prompt: str,
		max_tokens: int,
		purpose: str = "generation",
	) -> str:
		"""
		Generate text from one system prompt and one user prompt.
		"""
		messages = build_messages(system_prompt, user_prompt)
		return self.generate_chat(messages, purpose=purpose, max_tokens=max_tokens)


#============================================
def describe_llm_execution_path(transport_name: str, model_override: str) -> str:
	"""
	Describe configured LLM transport execution order.
	"""
	model_label = model_override or "auto"
	if transport_name == "ollama":
		return f"ollama(model={model_label})"
	if transport_name == "openai":
		return f"openai(model={model_label})"
	if transport_name == "auto":
		return f"openai(model={model_label}) -> ollama(model={model_label})"
	return transport_name


#============================================
def create_llm_client(
	settings: dict,
	transport_name: str,
	model_override: str,
	log_fn=None,
) -> LLMClient:
	"""
	Create an LLMClient for the selected transport from settings.
	"""
	ollama_url = pipeline_settings.get_setting_str(
		settings,
		["llm", "providers", "ollama", "base_url"],
		"http://localhost:11434",
	)
	openai_url = pipeline_settings.get_setting_str(
		settings,
		["llm", "providers", "openai", "base_url"],
		"",
	)
	openai_key = pipeline_settings.get_setting_str(
		settings,
		["llm", "providers", "openai", "api_key"],
		"",
	)
	transports = []
	if transport_name == "ollama":
		model = model_override or pipeline_settings.get_llm_provider_model(settings, "ollama")
		if not model:
			raise RuntimeError("Ollama transport needs a model name.")
		transports.append(OllamaTransport(model=model, base_url=ollama_url))
	elif transport_name == "openai":
		model = model_override or pipeline_settings.get_llm_provider_model(settings, "openai")
		transports.append(OpenAIChatTransport(model=model, base_url=openai_url, api_key=openai_key))
	elif transport_name == "auto":
		openai_model = model_override or pipeline_settings.get_llm_provider_model(settings, "openai")
		transports.append(
			OpenAIChatTransport(model=openai_model, base_url=openai_url, api_key=openai_key)
		)
		ollama_model = model_override or pipeline_settings.get_llm_provider_model(settings, "ollama")
		if ollama_model:
			transports.append(OllamaTransport(model=ollama_model, base_url=ollama_url))
	else:
		raise RuntimeError(f"Unsupported llm transport: {transport_name}")
	return LLMClient(transports=transports, log_fn=log_fn)
