from __future__ import annotations

import logging
from typing import List, Optional

from mentis.backend.tutor.errors import ConfigurationError, ProviderFailure, UnifiedOrchestrationFailure
from mentis.backend.tutor.history import adapt_history
from mentis.backend.tutor.prompts import build_system_instruction
from mentis.backend.tutor.providers import ProviderClient
from mentis.backend.tutor.types import (
	AdaptedHistory,
	GenerationParams,
	OrchestrationResult,
	StatusCallback,
	TutorRequest,
	generation_params,
	resolve_mode,
)


logger = logging.getLogger(__name__)

STATUS_THINKING = "thinking"
STATUS_ANALYZING_IMAGE = "analyzing image"
STATUS_USING_BACKUP = "using backup model"

_TITLE_PROMPT = (
	"Summarize the following message in 3-5 words to use as a conversation title. "
	"Reply with only the title.\n\nMessage: {message}"
)
_TITLE_QUOTES = "\"'`“”‘’"
_TITLE_MAX_CHARS = 80


class _StatusTrail:
	def __init__(self, on_status: Optional[StatusCallback]):
		self._on_status = on_status
		self.labels: List[str] = []

	def emit(self, label: str) -> None:
		self.labels.append(label)
		if self._on_status is None:
			return
		try:
			self._on_status(label)
		except Exception:
			logger.exception("status callback failed for label %r", label)


class ResponseOrchestrator:
	"""Routes one tutoring request to the text or vision provider.

	Image requests go straight to the vision provider with no fallback leg.
	Everything else tries the primary provider once and, on failure, the
	vision provider once in text-only mode. Exactly one provider's output is
	returned; provider errors never reach the caller directly.
	"""

	def __init__(self, primary: ProviderClient, vision: ProviderClient):
		self.primary = primary
		self.vision = vision

	async def orchestrate(
		self,
		request: TutorRequest,
		on_status: Optional[StatusCallback] = None,
	) -> OrchestrationResult:
		mode = resolve_mode(request.mode)
		system_instruction = build_system_instruction(request.subject, mode, request.language_code)
		history = adapt_history(request.prior_turns)
		params = generation_params(mode)
		trail = _StatusTrail(on_status)
		attachment = request.attachment

		if attachment is not None and attachment.is_image:
			trail.emit(STATUS_ANALYZING_IMAGE)
			try:
				text = await self.vision.invoke(
					system_instruction,
					history,
					request.user_text,
					attachment,
					params=params,
				)
			except ProviderFailure as exc:
				logger.error("vision request failed, no fallback available: %s", exc)
				raise UnifiedOrchestrationFailure() from exc
			return OrchestrationResult(text=text, provider_used="vision", transient_status=tuple(trail.labels))

		trail.emit(STATUS_THINKING)
		try:
			text = await self.primary.invoke(
				system_instruction,
				history,
				request.user_text,
				attachment,
				params=params,
			)
			return OrchestrationResult(text=text, provider_used="primary", transient_status=tuple(trail.labels))
		except (ProviderFailure, ConfigurationError) as exc:
			primary_error: Exception = exc
			logger.warning("primary provider failed, falling back: %s", exc)

		trail.emit(STATUS_USING_BACKUP)
		text = await self._fallback(system_instruction, history, request, params, primary_error)
		return OrchestrationResult(text=text, provider_used="fallback", transient_status=tuple(trail.labels))

	async def _fallback(
		self,
		system_instruction: str,
		history: AdaptedHistory,
		request: TutorRequest,
		params: GenerationParams,
		primary_error: Exception,
	) -> str:
		try:
			return await self.vision.invoke(
				system_instruction,
				history,
				request.user_text,
				request.attachment,
				params=params,
			)
		except ProviderFailure as exc:
			logger.error(
				"both providers failed; primary: %s; fallback: %s",
				primary_error,
				exc,
			)
			raise UnifiedOrchestrationFailure() from exc


def clean_title(raw: str) -> str:
	title = " ".join(raw.split()).strip().strip(_TITLE_QUOTES).strip()
	return title[:_TITLE_MAX_CHARS].rstrip()


async def generate_title(orchestrator: ResponseOrchestrator, message: str) -> Optional[str]:
	"""Best-effort 3-5 word title for a new conversation. Never raises."""
	request = TutorRequest(
		user_text=_TITLE_PROMPT.format(message=message),
		subject="General",
		prior_turns=(),
		mode="direct",
	)
	try:
		result = await orchestrator.orchestrate(request)
	except Exception as exc:
		logger.warning("auto-title generation failed: %s", exc)
		return None
	title = clean_title(result.text)
	return title or None
