from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from mentis.backend.services import chat_session_service
from mentis.backend.services.chat_session_service import Conversation
from mentis.backend.tutor.errors import ConfigurationError, ConversationNotFound
from mentis.backend.tutor.orchestrator import ResponseOrchestrator, generate_title
from mentis.backend.tutor.providers import (
	DEFAULT_PRIMARY_BASE_URL,
	DEFAULT_PRIMARY_MODEL,
	DEFAULT_TIMEOUT_S,
	DEFAULT_VISION_MODEL,
	TextProvider,
	VisionProvider,
)
from mentis.backend.tutor.types import Attachment, OrchestrationResult, StatusCallback, TutorRequest, resolve_mode


logger = logging.getLogger(__name__)


def _str_env(name: str, default: str) -> str:
	return os.getenv(name, default).strip() or default


def _provider_timeout() -> float:
	raw = os.getenv("TUTOR_PROVIDER_TIMEOUT_S", "").strip()
	if not raw:
		return DEFAULT_TIMEOUT_S
	try:
		value = float(raw)
	except ValueError as exc:
		raise ConfigurationError("TUTOR_PROVIDER_TIMEOUT_S must be numeric.") from exc
	if value <= 0:
		raise ConfigurationError("TUTOR_PROVIDER_TIMEOUT_S must be greater than zero.")
	return value


def build_orchestrator() -> ResponseOrchestrator:
	timeout_s = _provider_timeout()
	primary = TextProvider(
		api_key=os.getenv("GROQ_API_KEY", ""),
		model=_str_env("TUTOR_PRIMARY_MODEL", DEFAULT_PRIMARY_MODEL),
		base_url=_str_env("TUTOR_PRIMARY_BASE_URL", DEFAULT_PRIMARY_BASE_URL),
		timeout_s=timeout_s,
	)
	vision = VisionProvider(
		api_key=os.getenv("GEMINI_API_KEY", ""),
		model=_str_env("TUTOR_VISION_MODEL", DEFAULT_VISION_MODEL),
		timeout_s=timeout_s,
	)
	return ResponseOrchestrator(primary, vision)


def provider_status(orchestrator: ResponseOrchestrator) -> Dict[str, object]:
	primary_ready = orchestrator.primary.ready
	vision_ready = orchestrator.vision.ready
	warnings = []
	if not primary_ready:
		warnings.append("Primary provider not configured. Set GROQ_API_KEY; text requests will use the backup model.")
	if not vision_ready:
		warnings.append("Vision provider not configured. Set GEMINI_API_KEY; image requests and fallback are unavailable.")
	return {
		"primary": {"ready": primary_ready, "model": getattr(orchestrator.primary, "model", None)},
		"vision": {"ready": vision_ready, "model": getattr(orchestrator.vision, "model", None)},
		"text_ready": primary_ready or vision_ready,
		"image_ready": vision_ready,
		"warnings": warnings,
	}


@dataclass
class ChatOutcome:
	conversation: Conversation
	result: OrchestrationResult
	is_new_conversation: bool


def open_conversation(
	*,
	owner_id: str,
	conversation_id: Optional[str],
	subject: str,
	first_message: str,
) -> tuple[Conversation, bool]:
	"""Existing conversation, or an unsaved new one that is stored on the first successful answer."""
	if conversation_id:
		return chat_session_service.get_conversation(owner_id, conversation_id), False
	return chat_session_service.new_conversation(owner_id, subject, first_message), True


async def respond(
	orchestrator: ResponseOrchestrator,
	*,
	owner_id: str,
	conversation: Conversation,
	is_new_conversation: bool,
	user_input: str,
	mode: Optional[str] = None,
	language: Optional[str] = None,
	attachment: Optional[Attachment] = None,
	on_status: Optional[StatusCallback] = None,
) -> ChatOutcome:
	text = user_input.strip()
	if not text:
		raise ValueError("user_input must not be empty.")

	conversation_id = conversation.conversation_id
	prior_turns = [] if is_new_conversation else chat_session_service.recent_turns(owner_id, conversation_id)

	result = await orchestrator.orchestrate(
		TutorRequest(
			user_text=text,
			subject=conversation.subject,
			prior_turns=prior_turns,
			attachment=attachment,
			mode=resolve_mode(mode),
			language_code=language,
		),
		on_status=on_status,
	)
	# Nothing is stored unless the orchestration succeeded.
	updated = chat_session_service.record_exchange(
		owner_id,
		conversation,
		is_new=is_new_conversation,
		user_text=text,
		assistant_text=result.text,
		attachment=attachment,
	)
	return ChatOutcome(conversation=updated, result=result, is_new_conversation=is_new_conversation)


async def auto_title(
	orchestrator: ResponseOrchestrator,
	*,
	owner_id: str,
	conversation_id: str,
	first_message: str,
) -> Optional[str]:
	"""Apply a generated title. Returns it, or None when nothing was applied."""
	title = await generate_title(orchestrator, first_message)
	if not title:
		return None
	try:
		renamed = chat_session_service.rename_conversation(owner_id, conversation_id, title)
	except ConversationNotFound:
		logger.info("conversation %s removed before auto-title was applied", conversation_id)
		return None
	return renamed.title
