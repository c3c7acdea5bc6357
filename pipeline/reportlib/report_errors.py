"""Errors raised by the report pipeline stages."""


INVALID_REPOSITORY_MESSAGE = (
	"You've entered invalid owner/repo, or the target is private. Please try again."
)


#============================================
class InvalidRepositoryError(RuntimeError):
	"""
	Raised when the target repository cannot be validated.
	"""

	def __init__(self, message: str = INVALID_REPOSITORY_MESSAGE):
		super().__init__(message)


#============================================
class ChainFailureError(RuntimeError):
	"""
	Raised when either stage of a prompt chain produces no content.
	"""


#============================================
class NoActivityProcessedError(RuntimeError):
	"""
	Raised when aggregation receives no analysed records.
	"""
