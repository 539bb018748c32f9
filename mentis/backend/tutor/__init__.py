from mentis.backend.tutor.orchestrator import ResponseOrchestrator, generate_title
from mentis.backend.tutor.providers import ProviderClient, TextProvider, VisionProvider
from mentis.backend.tutor.reasoning import parse_reasoning_blocks
from mentis.backend.tutor.types import (
	Attachment,
	ConversationTurn,
	OrchestrationResult,
	Segment,
	TutorRequest,
)

__all__ = [
	"Attachment",
	"ConversationTurn",
	"OrchestrationResult",
	"ProviderClient",
	"ResponseOrchestrator",
	"Segment",
	"TextProvider",
	"TutorRequest",
	"VisionProvider",
	"generate_title",
	"parse_reasoning_blocks",
]
