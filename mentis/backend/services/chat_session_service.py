from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, List, Optional

from mentis.backend.tutor.errors import ConversationNotFound
from mentis.backend.tutor.types import Attachment, ConversationTurn


_DEFAULT_TTL_SECONDS = 24 * 60 * 60
_DEFAULT_MAX_TURNS = 200
_DEFAULT_CONTEXT_TURNS = 20
_PROVISIONAL_TITLE_CHARS = 30


@dataclass
class StoredTurn:
	turn: ConversationTurn
	created_at: str

	def as_dict(self) -> Dict[str, object]:
		return {
			"role": self.turn.role,
			"text": self.turn.text,
			"attachment": self.turn.attachment.as_dict() if self.turn.attachment else None,
			"created_at": self.created_at,
		}


@dataclass
class Conversation:
	conversation_id: str
	owner_id: str
	subject: str
	title: str
	created_at: str
	updated_at: str
	turns: List[StoredTurn] = field(default_factory=list)

	def summary(self) -> Dict[str, object]:
		return {
			"conversation_id": self.conversation_id,
			"subject": self.subject,
			"title": self.title,
			"created_at": self.created_at,
			"updated_at": self.updated_at,
			"turn_count": len(self.turns),
		}

	def as_dict(self) -> Dict[str, object]:
		payload = self.summary()
		payload["turns"] = [turn.as_dict() for turn in self.turns]
		return payload


_STORE: Dict[str, Conversation] = {}
_LOCK = Lock()


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _now_iso() -> str:
	return _now().isoformat().replace("+00:00", "Z")


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def ttl_seconds() -> int:
	return _int_env("TUTOR_SESSION_TTL_S", _DEFAULT_TTL_SECONDS, minimum=60)


def max_turns() -> int:
	return _int_env("TUTOR_SESSION_MAX_TURNS", _DEFAULT_MAX_TURNS, minimum=10)


def default_context_turns() -> int:
	return _int_env("TUTOR_SESSION_CONTEXT_TURNS", _DEFAULT_CONTEXT_TURNS, minimum=1)


def provisional_title(first_message: str) -> str:
	text = " ".join(first_message.split()).strip()
	if len(text) > _PROVISIONAL_TITLE_CHARS:
		return text[:_PROVISIONAL_TITLE_CHARS] + "..."
	return text or "New chat"


def _evict_expired_locked() -> None:
	now = _now()
	ttl = timedelta(seconds=ttl_seconds())
	expired: List[str] = []
	for conversation_id, conversation in _STORE.items():
		try:
			updated = datetime.fromisoformat(conversation.updated_at.replace("Z", "+00:00"))
		except ValueError:
			expired.append(conversation_id)
			continue
		if now - updated > ttl:
			expired.append(conversation_id)
	for conversation_id in expired:
		_STORE.pop(conversation_id, None)


def _owned_locked(owner_id: str, conversation_id: str) -> Conversation:
	conversation = _STORE.get(conversation_id)
	if conversation is None or conversation.owner_id != owner_id:
		raise ConversationNotFound(conversation_id)
	return conversation


def new_conversation(owner_id: str, subject: str, first_message: str) -> Conversation:
	"""Build a conversation without storing it. ``record_exchange`` stores it."""
	now = _now_iso()
	return Conversation(
		conversation_id=uuid.uuid4().hex,
		owner_id=owner_id,
		subject=subject,
		title=provisional_title(first_message),
		created_at=now,
		updated_at=now,
	)


def create_conversation(owner_id: str, subject: str, first_message: str) -> Conversation:
	conversation = new_conversation(owner_id, subject, first_message)
	with _LOCK:
		_evict_expired_locked()
		_STORE[conversation.conversation_id] = conversation
	return conversation


def get_conversation(owner_id: str, conversation_id: str) -> Conversation:
	with _LOCK:
		_evict_expired_locked()
		return _owned_locked(owner_id, conversation_id)


def list_conversations(owner_id: str) -> List[Conversation]:
	with _LOCK:
		_evict_expired_locked()
		owned = [conversation for conversation in _STORE.values() if conversation.owner_id == owner_id]
	return sorted(owned, key=lambda conversation: conversation.created_at, reverse=True)


def append_turn(
	owner_id: str,
	conversation_id: str,
	role: str,
	text: str,
	attachment: Optional[Attachment] = None,
) -> Conversation:
	with _LOCK:
		_evict_expired_locked()
		conversation = _owned_locked(owner_id, conversation_id)
		_append_locked(conversation, role, text, attachment)
		return conversation


def record_exchange(
	owner_id: str,
	conversation: Conversation,
	*,
	is_new: bool,
	user_text: str,
	assistant_text: str,
	attachment: Optional[Attachment] = None,
) -> Conversation:
	"""Store a completed user/assistant exchange, inserting ``conversation`` when new."""
	with _LOCK:
		_evict_expired_locked()
		if is_new:
			if conversation.owner_id != owner_id:
				raise ConversationNotFound(conversation.conversation_id)
			_STORE[conversation.conversation_id] = conversation
			stored = conversation
		else:
			stored = _owned_locked(owner_id, conversation.conversation_id)
		_append_locked(stored, "user", user_text, attachment)
		_append_locked(stored, "assistant", assistant_text)
		return stored


def _append_locked(
	conversation: Conversation,
	role: str,
	text: str,
	attachment: Optional[Attachment] = None,
) -> None:
	role_clean = "assistant" if role == "assistant" else "user"
	turn = ConversationTurn(role=role_clean, text=text.strip(), attachment=attachment)
	conversation.turns.append(StoredTurn(turn=turn, created_at=_now_iso()))
	conversation.turns = conversation.turns[-max_turns() :]
	conversation.updated_at = _now_iso()


def recent_turns(
	owner_id: str,
	conversation_id: str,
	max_turns_override: int | None = None,
) -> List[ConversationTurn]:
	with _LOCK:
		_evict_expired_locked()
		conversation = _owned_locked(owner_id, conversation_id)
		limit = max_turns_override if isinstance(max_turns_override, int) and max_turns_override > 0 else default_context_turns()
		return [stored.turn for stored in conversation.turns[-limit:]]


def rename_conversation(owner_id: str, conversation_id: str, title: str) -> Conversation:
	cleaned = " ".join(title.split()).strip()
	with _LOCK:
		conversation = _owned_locked(owner_id, conversation_id)
		if cleaned:
			conversation.title = cleaned
			conversation.updated_at = _now_iso()
		return conversation


def delete_conversation(owner_id: str, conversation_id: str) -> None:
	with _LOCK:
		_owned_locked(owner_id, conversation_id)
		_STORE.pop(conversation_id, None)


def reset() -> None:
	with _LOCK:
		_STORE.clear()
