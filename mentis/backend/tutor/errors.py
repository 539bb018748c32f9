from __future__ import annotations


UNIFIED_FAILURE_MESSAGE = "I'm having trouble connecting right now. Please try again."


class TutorServiceError(Exception):
	def __init__(self, *, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


class ConfigurationError(TutorServiceError):
	def __init__(self, message: str):
		super().__init__(status_code=503, code="tutor_provider_unconfigured", message=message)


class UnifiedOrchestrationFailure(TutorServiceError):
	def __init__(self, message: str = UNIFIED_FAILURE_MESSAGE):
		super().__init__(status_code=502, code="tutor_unavailable", message=message)


class MalformedStructuredOutput(TutorServiceError):
	def __init__(self, message: str = "Generation failed. Please try again."):
		super().__init__(status_code=502, code="study_tool_generation_failed", message=message)


class ConversationNotFound(TutorServiceError):
	def __init__(self, conversation_id: str):
		super().__init__(
			status_code=404,
			code="conversation_not_found",
			message=f"Conversation '{conversation_id}' was not found.",
		)


class ProviderFailure(Exception):
	"""A single upstream call failed. Never leaves the orchestrator."""

	def __init__(self, provider: str, detail: str, *, timed_out: bool = False):
		super().__init__(f"{provider}: {detail}")
		self.provider = provider
		self.detail = detail
		self.timed_out = timed_out
