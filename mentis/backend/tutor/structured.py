from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from mentis.backend.tutor.errors import MalformedStructuredOutput


_FENCE_START_RE = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_END_RE = re.compile(r"\s*```$")


def _first_balanced_object(text: str) -> Optional[str]:
	start = text.find("{")
	while start != -1:
		depth = 0
		in_string = False
		escaped = False
		for index in range(start, len(text)):
			char = text[index]
			if in_string:
				if escaped:
					escaped = False
				elif char == "\\":
					escaped = True
				elif char == '"':
					in_string = False
				continue
			if char == '"':
				in_string = True
			elif char == "{":
				depth += 1
			elif char == "}":
				depth -= 1
				if depth == 0:
					return text[start : index + 1]
		start = text.find("{", start + 1)
	return None


def extract_json_object(raw: str) -> Dict[str, Any]:
	"""Parse the first balanced ``{...}`` in a model response."""
	candidate = raw.strip()
	if candidate.startswith("```"):
		candidate = _FENCE_START_RE.sub("", candidate)
		candidate = _FENCE_END_RE.sub("", candidate)
	snippet = _first_balanced_object(candidate)
	if snippet is None:
		raise MalformedStructuredOutput()
	try:
		parsed = json.loads(snippet)
	except json.JSONDecodeError as exc:
		raise MalformedStructuredOutput() from exc
	if not isinstance(parsed, dict):
		raise MalformedStructuredOutput()
	return parsed
