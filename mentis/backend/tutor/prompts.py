from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from mentis.backend.tutor.i18n import language_directive
from mentis.backend.tutor.types import DEFAULT_MODE, TutorMode


REASONING_OPEN_TAG = "<thinking>"
REASONING_CLOSE_TAG = "</thinking>"

_GENERIC_SUBJECT = "general topics"


@dataclass(frozen=True)
class SubjectProfile:
	uses_math_notation: bool = False
	uses_code_formatting: bool = False


_PLAIN = SubjectProfile()
_MATH = SubjectProfile(uses_math_notation=True)
_CODE = SubjectProfile(uses_code_formatting=True)

SUBJECT_PROFILES: Dict[str, SubjectProfile] = {
	"math": _MATH,
	"physics": _MATH,
	"chemistry": _MATH,
	"history": _PLAIN,
	"biology": _PLAIN,
	"literature": _PLAIN,
	"coding": _CODE,
	"general": _PLAIN,
}

SUBJECTS: List[str] = ["Math", "Physics", "Chemistry", "History", "Biology", "Literature", "Coding", "General"]

_MODE_BLOCKS: Dict[TutorMode, str] = {
	"direct": (
		"\n\nMODE: Direct Answer"
		"\n- Provide the answer immediately with a clear, concise explanation."
		"\n- Show your work/reasoning step by step."
		"\n- Be efficient and to the point."
		"\n- Use examples when helpful."
	),
	"socratic": (
		"\n\nMODE: Socratic Tutor"
		"\n- NEVER give the answer directly unless the student has tried and explicitly asks for it."
		"\n- Guide the student through leading questions to help them discover the answer."
		"\n- Identify where the student is struggling and ask probing questions about that specific area."
		"\n- Be patient, encouraging, and supportive."
		"\n- After the student understands, offer to create practice problems for the areas they struggled with."
		"\n- Start by asking what they already know about the topic."
		"\n- If they're stuck, give small hints instead of answers."
	),
	"reasoning": (
		"\n\nMODE: Deep Reasoning"
		"\n- Think through the problem step by step before answering."
		f"\n- Wrap your internal reasoning in {REASONING_OPEN_TAG} tags."
		"\n- After your reasoning, provide a clear, well-structured final answer."
		"\n- Show mathematical derivations, logical deductions, and analytical steps."
		"\n- Consider edge cases and alternative approaches."
		"\n- Be thorough but organized in your reasoning."
		f"\n- Format: {REASONING_OPEN_TAG}your step-by-step reasoning here{REASONING_CLOSE_TAG}"
		" followed by the final answer."
	),
}

_MATH_DIRECTIVE = (
	" Use LaTeX for all math equations: wrap inline math in $...$ and block equations in $$...$$."
)
_CODE_DIRECTIVE = " Provide clean, commented code snippets."


def subject_profile(subject: Optional[str]) -> SubjectProfile:
	return SUBJECT_PROFILES.get((subject or "").strip().lower(), _PLAIN)


def _subject_label(subject: Optional[str]) -> str:
	label = " ".join((subject or "").split())
	return label or _GENERIC_SUBJECT


def build_system_instruction(
	subject: Optional[str],
	mode: Optional[str] = DEFAULT_MODE,
	language_code: Optional[str] = None,
) -> str:
	parts = [
		f"You are an expert tutor specialized in {_subject_label(subject)}. "
		"Always use correct grammar and formatting."
	]
	parts.append(_MODE_BLOCKS.get(mode, _MODE_BLOCKS[DEFAULT_MODE]))  # type: ignore[arg-type]

	profile = subject_profile(subject)
	if profile.uses_math_notation:
		parts.append(_MATH_DIRECTIVE)
	if profile.uses_code_formatting:
		parts.append(_CODE_DIRECTIVE)

	parts.append(language_directive(language_code))
	return "".join(parts)


def list_subjects() -> List[Dict[str, object]]:
	result: List[Dict[str, object]] = []
	for name in SUBJECTS:
		profile = subject_profile(name)
		result.append(
			{
				"name": name,
				"uses_math_notation": profile.uses_math_notation,
				"uses_code_formatting": profile.uses_code_formatting,
			}
		)
	return result
