"""
Errors raised by LLM transports and the client that drives them.
"""


#============================================
class TransportUnavailableError(RuntimeError):
	"""
	Raised when a transport cannot be reached or is not configured.
	"""


#============================================
class ContextWindowError(RuntimeError):
	"""
	Raised when a prompt does not fit the model context window.
	"""


#============================================
class GenerationError(RuntimeError):
	"""
	Raised when a transport answers but produces no usable content.
	"""
