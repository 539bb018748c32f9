from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from mentis.backend.tutor.errors import MalformedStructuredOutput
from mentis.backend.tutor.orchestrator import ResponseOrchestrator, generate_title
from mentis.backend.tutor.structured import extract_json_object
from mentis.backend.tutor.types import TutorRequest


FLASHCARD_COUNT = 10
QUIZ_QUESTION_COUNT = 5
QUIZ_OPTION_COUNT = 4
NOTES_TITLE_SOURCE_CHARS = 200
NOTES_TITLE_MAX_CHARS = 60
DEFAULT_NOTES_TITLE = "Study Notes"


class FlashcardItem(BaseModel):
	model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

	front: str = Field(..., min_length=1)
	back: str = Field(..., min_length=1)


class FlashcardDeck(BaseModel):
	model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

	title: str = ""
	cards: List[FlashcardItem] = Field(..., min_length=1)


class QuizQuestion(BaseModel):
	model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

	question: str = Field(..., min_length=1)
	options: List[str] = Field(..., min_length=2)
	correct_index: int = Field(..., alias="correctIndex", ge=0)
	explanation: Optional[str] = None

	@model_validator(mode="after")
	def _correct_index_in_range(self) -> "QuizQuestion":
		if self.correct_index >= len(self.options):
			raise ValueError("correctIndex must point at one of the options.")
		return self


class Quiz(BaseModel):
	model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

	title: str = ""
	questions: List[QuizQuestion] = Field(..., min_length=1)


_JSON_ONLY = "You MUST respond with ONLY valid JSON, no other text. Use this exact format:\n"
_NO_FENCES = "No markdown, no code fences, just raw JSON."

_SPEAKER_PREFIX_RE = re.compile(r"^\s*(?:host|speaker)?\s*([ab])\s*:\s*", re.IGNORECASE)
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


def _source_block(content: Optional[str]) -> str:
	return f"\n\nNotes:\n{content}" if content else ""


def flashcards_prompt(topic: str, content: Optional[str] = None) -> str:
	subject = "from these notes" if content else f'about: "{topic}"'
	return (
		f"Create exactly {FLASHCARD_COUNT} flashcards {subject}.\n"
		+ _JSON_ONLY
		+ f'{{"title":"{topic}","cards":[{{"front":"term or question","back":"definition or answer"}}]}}\n'
		+ f"Make {FLASHCARD_COUNT} cards. {_NO_FENCES}"
		+ _source_block(content)
	)


def quiz_prompt(topic: str, content: Optional[str] = None) -> str:
	subject = "from these notes" if content else f'about: "{topic}"'
	return (
		f"Create a {QUIZ_QUESTION_COUNT}-question multiple choice quiz {subject}.\n"
		+ _JSON_ONLY
		+ f'{{"title":"Quiz: {topic}","questions":[{{"question":"question text","options":["A","B","C","D"],'
		+ '"correctIndex":0,"explanation":"why this is correct"}]}\n'
		+ f"correctIndex is 0-based. Make exactly {QUIZ_QUESTION_COUNT} questions with {QUIZ_OPTION_COUNT} options each. "
		+ _NO_FENCES
		+ _source_block(content)
	)


def notes_prompt(content: str) -> str:
	return (
		"Create comprehensive, well-formatted study notes from the following content. "
		"Use markdown with headers, bullet points, bold key terms, and clear organization. "
		"Include a summary at the end.\n\n"
		f"Content:\n{content}"
	)


def podcast_prompt(notes: str) -> str:
	return (
		"Create an engaging educational podcast script from these notes. "
		"Two hosts (Host A and Host B) should discuss the content. "
		"Each host should speak 2-3 sentences per turn. "
		"Make it conversational, informative, and engaging. "
		'Format each line as "Host A: ..." or "Host B: ...".\n\n'
		f"Notes:\n{notes}"
	)


def parse_podcast_script(script: str) -> List[Dict[str, str]]:
	"""Split a script into speaker turns.

	Lines with a ``Host A:``/``Host B:`` style prefix keep that speaker; unlabeled
	lines alternate. A script with no line breaks is split into sentences.
	"""
	lines = [line for line in script.splitlines() if line.strip()]
	if len(lines) <= 1:
		lines = [sentence for sentence in _SENTENCE_RE.findall(script) if sentence.strip()] or lines
	segments: List[Dict[str, str]] = []
	for index, line in enumerate(lines):
		match = _SPEAKER_PREFIX_RE.match(line)
		speaker = match.group(1).upper() if match else ("A" if index % 2 == 0 else "B")
		text = line[match.end() :].strip() if match else line.strip()
		if text:
			segments.append({"speaker": speaker, "text": text})
	return segments


async def _generate_text(orchestrator: ResponseOrchestrator, prompt: str, language: Optional[str]) -> str:
	result = await orchestrator.orchestrate(
		TutorRequest(
			user_text=prompt,
			subject="General",
			prior_turns=(),
			mode="direct",
			language_code=language,
		)
	)
	return result.text


async def _generate_json(orchestrator: ResponseOrchestrator, prompt: str, language: Optional[str]) -> Dict[str, Any]:
	return extract_json_object(await _generate_text(orchestrator, prompt, language))


def _clean(text: Optional[str]) -> str:
	return " ".join((text or "").split()).strip()


async def generate_flashcards(
	orchestrator: ResponseOrchestrator,
	topic: str,
	language: Optional[str] = None,
	content: Optional[str] = None,
) -> Dict[str, object]:
	cleaned = _clean(topic)
	payload = await _generate_json(orchestrator, flashcards_prompt(cleaned, (content or "").strip() or None), language)
	try:
		deck = FlashcardDeck.model_validate(payload)
	except ValidationError as exc:
		raise MalformedStructuredOutput("Failed to generate flashcards. Please try again.") from exc
	return {
		"title": deck.title or cleaned,
		"cards": [card.model_dump() for card in deck.cards],
	}


async def generate_quiz(
	orchestrator: ResponseOrchestrator,
	topic: str,
	language: Optional[str] = None,
	content: Optional[str] = None,
) -> Dict[str, object]:
	cleaned = _clean(topic)
	payload = await _generate_json(orchestrator, quiz_prompt(cleaned, (content or "").strip() or None), language)
	try:
		quiz = Quiz.model_validate(payload)
	except ValidationError as exc:
		raise MalformedStructuredOutput("Failed to generate quiz. Please try again.") from exc
	questions = [question.model_dump(by_alias=True) for question in quiz.questions]
	return {
		"title": quiz.title or f"Quiz: {cleaned}",
		"questions": questions,
		"total_questions": len(questions),
	}


async def generate_notes(
	orchestrator: ResponseOrchestrator,
	content: str,
	language: Optional[str] = None,
) -> Dict[str, object]:
	source = content.strip()
	notes = await _generate_text(orchestrator, notes_prompt(source), language)
	title = await generate_title(orchestrator, source[:NOTES_TITLE_SOURCE_CHARS])
	return {
		"title": (title or DEFAULT_NOTES_TITLE)[:NOTES_TITLE_MAX_CHARS],
		"notes": notes,
	}


async def generate_podcast_script(
	orchestrator: ResponseOrchestrator,
	notes: str,
	language: Optional[str] = None,
) -> Dict[str, object]:
	script = await _generate_text(orchestrator, podcast_prompt(notes.strip()), language)
	return {
		"script": script,
		"segments": parse_podcast_script(script),
	}
