from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple


TurnRole = Literal["user", "assistant"]
AttachmentKind = Literal["image", "text"]
TutorMode = Literal["direct", "socratic", "reasoning"]
ProviderUsed = Literal["primary", "fallback", "vision"]
SegmentKind = Literal["prose", "reasoning"]

StatusCallback = Callable[[str], None]

TUTOR_MODES: Tuple[TutorMode, ...] = ("direct", "socratic", "reasoning")
DEFAULT_MODE: TutorMode = "direct"


def resolve_mode(value: Optional[str]) -> TutorMode:
	candidate = (value or "").strip().lower()
	if candidate in TUTOR_MODES:
		return candidate  # type: ignore[return-value]
	return DEFAULT_MODE


@dataclass(frozen=True)
class Attachment:
	content: str
	kind: AttachmentKind
	mime_type: Optional[str] = None
	file_name: Optional[str] = None

	@property
	def is_image(self) -> bool:
		return self.kind == "image"

	def as_dict(self) -> Dict[str, Any]:
		return {
			"kind": self.kind,
			"mime_type": self.mime_type,
			"file_name": self.file_name,
		}


@dataclass(frozen=True)
class ConversationTurn:
	role: TurnRole
	text: str
	attachment: Optional[Attachment] = None


@dataclass(frozen=True)
class GenerationParams:
	temperature: float
	max_output_tokens: int


_DEFAULT_PARAMS = GenerationParams(temperature=0.7, max_output_tokens=1024)
_REASONING_PARAMS = GenerationParams(temperature=0.3, max_output_tokens=2048)


def generation_params(mode: TutorMode) -> GenerationParams:
	if mode == "reasoning":
		return _REASONING_PARAMS
	return _DEFAULT_PARAMS


@dataclass
class TutorRequest:
	user_text: str
	subject: str = "General"
	prior_turns: Sequence[ConversationTurn] = field(default_factory=tuple)
	attachment: Optional[Attachment] = None
	mode: TutorMode = DEFAULT_MODE
	language_code: Optional[str] = None


@dataclass(frozen=True)
class OrchestrationResult:
	text: str
	provider_used: ProviderUsed
	transient_status: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Segment:
	kind: SegmentKind
	text: str

	def as_dict(self) -> Dict[str, str]:
		return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class AdaptedHistory:
	chat_messages: List[Dict[str, str]] = field(default_factory=list)
	contents: List[Dict[str, Any]] = field(default_factory=list)
