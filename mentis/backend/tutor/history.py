from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from mentis.backend.tutor.types import AdaptedHistory, Attachment, ConversationTurn


def text_with_file(text: str, attachment: Optional[Attachment]) -> str:
	if attachment is None or attachment.kind != "text":
		return text
	return f"{text}\n[File]: {attachment.content}"


def chat_messages(turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
	return [
		{
			"role": "user" if turn.role == "user" else "assistant",
			"content": text_with_file(turn.text, turn.attachment),
		}
		for turn in turns
	]


def gemini_contents(turns: Sequence[ConversationTurn]) -> List[Dict[str, object]]:
	return [
		{
			"role": "user" if turn.role == "user" else "model",
			"parts": [{"text": text_with_file(turn.text, turn.attachment)}],
		}
		for turn in turns
	]


def adapt_history(turns: Sequence[ConversationTurn]) -> AdaptedHistory:
	return AdaptedHistory(chat_messages=chat_messages(turns), contents=gemini_contents(turns))
