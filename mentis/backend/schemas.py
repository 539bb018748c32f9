from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mentis.backend import constants
from mentis.backend.tutor.types import Attachment


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


def _decoded_size(content: str) -> int:
	payload = content.split(",", 1)[1] if content.startswith("data:") and "," in content else content
	return (len(payload) * 3) // 4


class AttachmentPayload(BaseModel):
	model_config = ConfigDict(extra="forbid")

	content: str = Field(..., min_length=1, description="Raw text for text files, base64 for images.")
	kind: Literal["image", "text"]
	mime_type: Optional[str] = Field(default=None, max_length=100)
	file_name: Optional[str] = Field(default=None, max_length=255)

	@model_validator(mode="after")
	def _within_size_limit(self) -> "AttachmentPayload":
		if self.kind == "image":
			size = _decoded_size(self.content)
		else:
			size = len(self.content.encode("utf-8"))
		if size > constants.MAX_ATTACHMENT_BYTES:
			raise ValueError("Attachment exceeds the 2MB limit.")
		return self

	def to_attachment(self) -> Attachment:
		return Attachment(
			content=self.content,
			kind=self.kind,
			mime_type=self.mime_type,
			file_name=self.file_name,
		)


class TutorRespondRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_input: str = Field(..., min_length=1, max_length=constants.MAX_PROMPT_CHARS, description="Learner message.")
	subject: str = Field(default="General", max_length=64)
	mode: Literal["direct", "socratic", "reasoning"] = Field(default="direct")
	language: str = Field(default="en", max_length=16, description="Preferred response language code.")
	attachment: Optional[AttachmentPayload] = None
	conversation_id: Optional[str] = Field(default=None, description="Continue an existing conversation.")


class TutorStreamRequest(TutorRespondRequest):
	pass


class ConversationRenameRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	title: str = Field(..., min_length=1, max_length=120)


class StudyToolRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	topic: str = Field(..., min_length=1, max_length=constants.MAX_TOPIC_CHARS)
	language: str = Field(default="en", max_length=16)
	content: Optional[str] = Field(
		default=None,
		max_length=constants.MAX_SOURCE_CHARS,
		description="Source notes to build from; the topic then serves as their title.",
	)


class NotesRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	content: str = Field(..., min_length=1, max_length=constants.MAX_SOURCE_CHARS)
	language: str = Field(default="en", max_length=16)


class PodcastRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	notes: str = Field(..., min_length=1, max_length=constants.MAX_SOURCE_CHARS)
	language: str = Field(default="en", max_length=16)


class SegmentData(BaseModel):
	model_config = ConfigDict(extra="forbid")

	kind: Literal["prose", "reasoning"]
	text: str


class TutorResponseData(BaseModel):
	model_config = ConfigDict(extra="forbid")

	conversation_id: str
	title: str
	text: str
	provider_used: Literal["primary", "fallback", "vision"]
	transient_status: List[str] = Field(default_factory=list)
	segments: List[SegmentData] = Field(default_factory=list)
