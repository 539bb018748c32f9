import os
from unittest import TestCase
from unittest.mock import patch

from mentis.backend.services import chat_session_service
from mentis.backend.tutor.errors import ConversationNotFound
from mentis.backend.tutor.types import Attachment


class ChatSessionServiceTests(TestCase):
	def setUp(self) -> None:
		chat_session_service.reset()

	def tearDown(self) -> None:
		chat_session_service.reset()

	def test_provisional_title_truncates_long_messages(self) -> None:
		self.assertEqual(chat_session_service.provisional_title("Short question"), "Short question")
		long_title = chat_session_service.provisional_title("Explain   the difference between mitosis and meiosis")
		self.assertEqual(long_title, "Explain the difference between...")
		self.assertEqual(chat_session_service.provisional_title("   "), "New chat")

	def test_conversations_are_scoped_to_their_owner(self) -> None:
		mine = chat_session_service.create_conversation("alice", "Math", "What is a derivative?")
		chat_session_service.create_conversation("bob", "History", "Who was Napoleon?")

		listed = chat_session_service.list_conversations("alice")

		self.assertEqual([conversation.conversation_id for conversation in listed], [mine.conversation_id])
		with self.assertRaises(ConversationNotFound):
			chat_session_service.get_conversation("bob", mine.conversation_id)
		with self.assertRaises(ConversationNotFound):
			chat_session_service.append_turn("bob", mine.conversation_id, "user", "hijack")

	def test_turns_are_appended_in_order(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "Biology", "Cells?")
		notes = Attachment(content="Mitochondria make ATP.", kind="text", file_name="notes.txt")

		chat_session_service.append_turn("alice", conversation.conversation_id, "user", "  Summarize  ", notes)
		updated = chat_session_service.append_turn("alice", conversation.conversation_id, "assistant", "They make ATP.")

		payload = updated.as_dict()
		self.assertEqual(payload["turn_count"], 2)
		self.assertEqual([turn["role"] for turn in payload["turns"]], ["user", "assistant"])
		self.assertEqual(payload["turns"][0]["text"], "Summarize")
		self.assertEqual(payload["turns"][0]["attachment"]["file_name"], "notes.txt")
		self.assertIsNone(payload["turns"][1]["attachment"])

	def test_unknown_roles_are_stored_as_user(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "General", "Hi")
		chat_session_service.append_turn("alice", conversation.conversation_id, "system", "sneaky")
		turns = chat_session_service.recent_turns("alice", conversation.conversation_id)
		self.assertEqual(turns[0].role, "user")

	def test_recent_turns_respects_context_window(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "General", "Count")
		for index in range(6):
			role = "user" if index % 2 == 0 else "assistant"
			chat_session_service.append_turn("alice", conversation.conversation_id, role, f"turn {index}")

		with patch.dict(os.environ, {"TUTOR_SESSION_CONTEXT_TURNS": "4"}):
			window = chat_session_service.recent_turns("alice", conversation.conversation_id)
		explicit = chat_session_service.recent_turns("alice", conversation.conversation_id, max_turns_override=2)

		self.assertEqual([turn.text for turn in window], ["turn 2", "turn 3", "turn 4", "turn 5"])
		self.assertEqual([turn.text for turn in explicit], ["turn 4", "turn 5"])

	def test_rename_ignores_blank_titles(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "Physics", "Why is the sky blue?")

		renamed = chat_session_service.rename_conversation("alice", conversation.conversation_id, "  Rayleigh   Scattering ")
		unchanged = chat_session_service.rename_conversation("alice", conversation.conversation_id, "   ")

		self.assertEqual(renamed.title, "Rayleigh Scattering")
		self.assertEqual(unchanged.title, "Rayleigh Scattering")

	def test_delete_removes_conversation(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "General", "Bye")

		chat_session_service.delete_conversation("alice", conversation.conversation_id)

		with self.assertRaises(ConversationNotFound):
			chat_session_service.get_conversation("alice", conversation.conversation_id)
		with self.assertRaises(ConversationNotFound):
			chat_session_service.delete_conversation("alice", conversation.conversation_id)

	def test_expired_conversations_are_evicted(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "General", "Old")
		conversation.updated_at = "2000-01-01T00:00:00Z"

		with self.assertRaises(ConversationNotFound):
			chat_session_service.get_conversation("alice", conversation.conversation_id)

	def test_new_conversation_is_stored_by_its_first_exchange(self) -> None:
		conversation = chat_session_service.new_conversation("alice", "Math", "What is a limit?")
		self.assertEqual(chat_session_service.list_conversations("alice"), [])

		stored = chat_session_service.record_exchange(
			"alice",
			conversation,
			is_new=True,
			user_text="What is a limit?",
			assistant_text="The value a function approaches.",
		)

		self.assertIs(chat_session_service.get_conversation("alice", conversation.conversation_id), stored)
		self.assertEqual([stored_turn.turn.role for stored_turn in stored.turns], ["user", "assistant"])

	def test_exchange_appends_user_then_assistant(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "Biology", "Cells?")
		notes = Attachment(content="Ribosomes build proteins.", kind="text", file_name="notes.txt")

		chat_session_service.record_exchange(
			"alice",
			conversation,
			is_new=False,
			user_text=" Summarize ",
			assistant_text="Ribosomes build proteins.",
			attachment=notes,
		)

		turns = chat_session_service.recent_turns("alice", conversation.conversation_id)
		self.assertEqual([(turn.role, turn.text) for turn in turns], [("user", "Summarize"), ("assistant", "Ribosomes build proteins.")])
		self.assertEqual(turns[0].attachment, notes)
		self.assertIsNone(turns[1].attachment)

	def test_exchange_for_a_removed_conversation_is_not_found(self) -> None:
		conversation = chat_session_service.create_conversation("alice", "General", "Hi")
		chat_session_service.delete_conversation("alice", conversation.conversation_id)

		with self.assertRaises(ConversationNotFound):
			chat_session_service.record_exchange("alice", conversation, is_new=False, user_text="Hi", assistant_text="Hello")
		self.assertEqual(chat_session_service.list_conversations("alice"), [])

	def test_exchange_cannot_store_another_owners_conversation(self) -> None:
		conversation = chat_session_service.new_conversation("bob", "General", "Hi")

		with self.assertRaises(ConversationNotFound):
			chat_session_service.record_exchange("alice", conversation, is_new=True, user_text="Hi", assistant_text="Hello")
		self.assertEqual(chat_session_service.list_conversations("bob"), [])
