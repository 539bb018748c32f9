import json
from unittest import TestCase

from fastapi.testclient import TestClient

from mentis.backend.main import create_app
from mentis.backend.services import chat_session_service
from mentis.backend.tutor.errors import ProviderFailure
from mentis.backend.tutor.orchestrator import ResponseOrchestrator


_PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="


class _TutorProvider:
	"""Answers title prompts with a fixed title and everything else with ``answer``."""

	def __init__(self, name: str, *, answer: str = "ok", title: str = "Derivative Basics", error: Exception | None = None):
		self.name = name
		self.model = f"{name}-model"
		self._answer = answer
		self._title = title
		self._error = error
		self.calls = []

	@property
	def ready(self) -> bool:
		return True

	async def invoke(self, system_instruction, history, user_text, attachment=None, *, params):
		self.calls.append({"system_instruction": system_instruction, "history": history, "user_text": user_text})
		if self._error is not None:
			raise self._error
		if "3-5 words" in user_text:
			if isinstance(self._title, Exception):
				raise self._title
			return self._title
		return self._answer


class ApiContractsTests(TestCase):
	def setUp(self) -> None:
		chat_session_service.reset()
		self.primary = _TutorProvider("primary", answer="<thinking>d/dx x^2 = 2x</thinking>The derivative is $2x$.")
		self.vision = _TutorProvider("vision", answer="I see a parabola.")
		self.client = TestClient(create_app(orchestrator=ResponseOrchestrator(self.primary, self.vision)))

	def tearDown(self) -> None:
		chat_session_service.reset()

	def _respond(self, **body):
		body.setdefault("user_input", "What is the derivative of x^2?")
		return self.client.post("/api/tutor/respond", json=body, headers={"X-User-ID": "student-1"})

	def test_respond_returns_text_segments_and_provider(self) -> None:
		response = self._respond(subject="Math", mode="reasoning")

		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertTrue(payload["ok"])
		self.assertIn("request_id", payload)
		data = payload["data"]
		self.assertEqual(data["provider_used"], "primary")
		self.assertEqual(data["transient_status"], ["thinking"])
		self.assertEqual(data["text"], "<thinking>d/dx x^2 = 2x</thinking>The derivative is $2x$.")
		self.assertEqual(
			data["segments"],
			[
				{"kind": "reasoning", "text": "d/dx x^2 = 2x"},
				{"kind": "prose", "text": "The derivative is $2x$."},
			],
		)
		self.assertIn("MODE: Deep Reasoning", self.primary.calls[0]["system_instruction"])

	def test_new_conversation_is_auto_titled_after_response(self) -> None:
		response = self._respond()
		data = response.json()["data"]
		self.assertEqual(data["title"], "What is the derivative of x^2?")

		conversation = self.client.get(
			f"/api/conversations/{data['conversation_id']}",
			headers={"X-User-ID": "student-1"},
		).json()["data"]["conversation"]

		self.assertEqual(conversation["title"], "Derivative Basics")
		self.assertEqual([turn["role"] for turn in conversation["turns"]], ["user", "assistant"])

	def test_failed_auto_title_keeps_provisional_title(self) -> None:
		self.primary._title = ProviderFailure("primary", "HTTP 500")
		self.vision._title = ProviderFailure("vision", "HTTP 500")

		with self.assertLogs("mentis.backend.tutor.orchestrator", level="WARNING"):
			response = self._respond()

		self.assertEqual(response.status_code, 200)
		data = response.json()["data"]
		self.assertEqual(data["provider_used"], "primary")
		conversation = self.client.get(
			f"/api/conversations/{data['conversation_id']}",
			headers={"X-User-ID": "student-1"},
		).json()["data"]["conversation"]
		self.assertEqual(conversation["title"], "What is the derivative of x^2?")

	def test_follow_up_carries_prior_turns(self) -> None:
		first = self._respond().json()["data"]
		self.primary.calls.clear()

		second = self._respond(user_input="And of x^3?", conversation_id=first["conversation_id"])

		self.assertEqual(second.status_code, 200)
		history = self.primary.calls[0]["history"].chat_messages
		self.assertEqual([message["role"] for message in history], ["user", "assistant"])
		self.assertEqual(history[0]["content"], "What is the derivative of x^2?")
		self.assertEqual(self.primary.calls[0]["user_text"], "And of x^3?")

	def test_follow_up_to_unknown_conversation_is_404(self) -> None:
		response = self._respond(conversation_id="missing")

		self.assertEqual(response.status_code, 404)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "conversation_not_found")

	def test_image_attachment_routes_to_vision(self) -> None:
		response = self._respond(
			user_input="What is this graph?",
			attachment={"content": _PNG_BASE64, "kind": "image", "mime_type": "image/png"},
		)

		data = response.json()["data"]
		self.assertEqual(data["provider_used"], "vision")
		self.assertEqual(data["text"], "I see a parabola.")
		self.assertEqual(data["transient_status"], ["analyzing image"])

	def test_primary_outage_uses_backup_model(self) -> None:
		self.primary._error = ProviderFailure("primary", "HTTP 500")

		data = self._respond().json()["data"]

		self.assertEqual(data["provider_used"], "fallback")
		self.assertEqual(data["transient_status"], ["thinking", "using backup model"])

	def test_total_outage_returns_unified_error(self) -> None:
		self.primary._error = ProviderFailure("primary", "HTTP 500")
		self.vision._error = ProviderFailure("vision", "quota exhausted")

		with self.assertLogs("mentis.backend.tutor.orchestrator", level="ERROR"):
			response = self._respond()

		self.assertEqual(response.status_code, 502)
		error = response.json()["error"]
		self.assertEqual(error["code"], "tutor_unavailable")
		self.assertEqual(error["message"], "I'm having trouble connecting right now. Please try again.")
		self.assertNotIn("quota", json.dumps(response.json()))

	def test_total_outage_stores_no_conversation(self) -> None:
		self.primary._error = ProviderFailure("primary", "HTTP 500")
		self.vision._error = ProviderFailure("vision", "HTTP 503")

		with self.assertLogs("mentis.backend.tutor.orchestrator", level="ERROR"):
			self.assertEqual(self._respond().status_code, 502)

		listed = self.client.get("/api/conversations", headers={"X-User-ID": "student-1"}).json()["data"]
		self.assertEqual(listed["conversations"], [])

	def test_failed_follow_up_leaves_no_dangling_user_turn(self) -> None:
		conversation_id = self._respond().json()["data"]["conversation_id"]
		self.primary._error = ProviderFailure("primary", "HTTP 500")
		self.vision._error = ProviderFailure("vision", "HTTP 503")

		with self.assertLogs("mentis.backend.tutor.orchestrator", level="ERROR"):
			failed = self._respond(user_input="And of x^3?", conversation_id=conversation_id)

		self.assertEqual(failed.status_code, 502)
		conversation = self.client.get(
			f"/api/conversations/{conversation_id}",
			headers={"X-User-ID": "student-1"},
		).json()["data"]["conversation"]
		self.assertEqual(conversation["turn_count"], 2)
		self.assertEqual([turn["role"] for turn in conversation["turns"]], ["user", "assistant"])

	def test_invalid_mode_is_a_validation_error(self) -> None:
		response = self._respond(mode="lecture")

		self.assertEqual(response.status_code, 422)
		payload = response.json()
		self.assertEqual(payload["error"]["code"], "validation_error")
		self.assertTrue(any("mode" in item for item in payload["error"]["evidence"]))

	def test_blank_input_is_a_validation_error(self) -> None:
		response = self._respond(user_input="   ")
		self.assertEqual(response.status_code, 422)
		self.assertEqual(self.primary.calls, [])

	def test_oversized_attachment_is_rejected(self) -> None:
		response = self._respond(attachment={"content": "x" * (2 * 1024 * 1024 + 1), "kind": "text"})
		self.assertEqual(response.status_code, 422)

	def test_conversation_crud_is_owner_scoped(self) -> None:
		conversation_id = self._respond().json()["data"]["conversation_id"]

		listed = self.client.get("/api/conversations", headers={"X-User-ID": "student-1"}).json()["data"]
		self.assertEqual([item["conversation_id"] for item in listed["conversations"]], [conversation_id])
		other = self.client.get("/api/conversations", headers={"X-User-ID": "student-2"}).json()["data"]
		self.assertEqual(other["conversations"], [])
		self.assertEqual(
			self.client.get(f"/api/conversations/{conversation_id}", headers={"X-User-ID": "student-2"}).status_code,
			404,
		)

		renamed = self.client.patch(
			f"/api/conversations/{conversation_id}",
			json={"title": "Calculus notes"},
			headers={"X-User-ID": "student-1"},
		)
		self.assertEqual(renamed.json()["data"]["conversation"]["title"], "Calculus notes")

		deleted = self.client.delete(f"/api/conversations/{conversation_id}", headers={"X-User-ID": "student-1"})
		self.assertEqual(deleted.json()["data"]["deleted"], conversation_id)
		self.assertEqual(
			self.client.get(f"/api/conversations/{conversation_id}", headers={"X-User-ID": "student-1"}).status_code,
			404,
		)

	def test_flashcards_endpoint_returns_deck(self) -> None:
		self.primary._answer = json.dumps(
			{"title": "Derivatives", "cards": [{"front": "d/dx x^n", "back": "n x^(n-1)"}]}
		)

		response = self.client.post("/api/study-tools/flashcards", json={"topic": "derivatives"})

		self.assertEqual(response.status_code, 200)
		deck = response.json()["data"]["deck"]
		self.assertEqual(deck["title"], "Derivatives")
		self.assertEqual(deck["cards"], [{"front": "d/dx x^n", "back": "n x^(n-1)"}])

	def test_quiz_endpoint_reports_malformed_output(self) -> None:
		self.primary._answer = "Sorry, here is a quiz in prose instead."

		response = self.client.post("/api/study-tools/quiz", json={"topic": "derivatives"})

		self.assertEqual(response.status_code, 502)
		self.assertEqual(response.json()["error"]["code"], "study_tool_generation_failed")

	def test_flashcards_from_pasted_notes(self) -> None:
		self.primary._answer = json.dumps({"cards": [{"front": "Mitochondria", "back": "Powerhouse of the cell"}]})

		response = self.client.post(
			"/api/study-tools/flashcards",
			json={"topic": "Biology notes", "content": "Mitochondria produce ATP."},
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()["data"]["deck"]["title"], "Biology notes")
		self.assertTrue(self.primary.calls[0]["user_text"].endswith("Notes:\nMitochondria produce ATP."))

	def test_notes_endpoint_returns_titled_notes(self) -> None:
		self.primary._answer = "# Derivatives\n\n- **Power rule**: n x^(n-1)"

		response = self.client.post("/api/study-tools/notes", json={"content": "Lecture 4: the power rule."})

		self.assertEqual(response.status_code, 200)
		notes = response.json()["data"]["notes"]
		self.assertEqual(notes["title"], "Derivative Basics")
		self.assertEqual(notes["notes"], "# Derivatives\n\n- **Power rule**: n x^(n-1)")

	def test_notes_endpoint_requires_content(self) -> None:
		response = self.client.post("/api/study-tools/notes", json={"content": "  "})

		self.assertEqual(response.status_code, 422)
		self.assertEqual(response.json()["error"]["code"], "validation_error")
		self.assertEqual(self.primary.calls, [])

	def test_podcast_endpoint_returns_speaker_segments(self) -> None:
		self.primary._answer = "Host A: Today: derivatives.\nHost B: Let's start with the power rule."

		response = self.client.post("/api/study-tools/podcast", json={"notes": "Power rule notes."})

		self.assertEqual(response.status_code, 200)
		podcast = response.json()["data"]["podcast"]
		self.assertEqual(
			podcast["segments"],
			[
				{"speaker": "A", "text": "Today: derivatives."},
				{"speaker": "B", "text": "Let's start with the power rule."},
			],
		)

	def test_unknown_route_uses_error_envelope(self) -> None:
		response = self.client.get("/api/nowhere")

		self.assertEqual(response.status_code, 404)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "http_404")
		self.assertEqual(payload["error"]["message"], "Not Found")
		self.assertEqual(payload["error"]["evidence"], [])

	def test_catalog_endpoints(self) -> None:
		languages = self.client.get("/api/tutor/languages").json()["data"]
		subjects = self.client.get("/api/tutor/subjects").json()["data"]

		self.assertEqual(languages["default"], "en")
		self.assertIn({"code": "es", "name": "Español"}, languages["languages"])
		self.assertIn("Math", [item["name"] for item in subjects["subjects"]])

	def test_health_summary_reports_provider_readiness(self) -> None:
		response = self.client.get("/api/health/summary")

		self.assertEqual(response.status_code, 200)
		providers = response.json()["data"]["providers"]
		self.assertTrue(providers["text_ready"])
		self.assertTrue(providers["image_ready"])
		self.assertEqual(providers["primary"]["model"], "primary-model")
		self.assertEqual(providers["warnings"], [])

	def test_request_id_header_is_echoed(self) -> None:
		response = self.client.get("/api/tutor/subjects", headers={"X-Request-ID": "req-123"})

		self.assertEqual(response.headers["X-Request-ID"], "req-123")
		self.assertEqual(response.json()["request_id"], "req-123")
