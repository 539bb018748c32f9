from __future__ import annotations

import re
from typing import Iterable, List

from mentis.backend.tutor.prompts import REASONING_CLOSE_TAG, REASONING_OPEN_TAG
from mentis.backend.tutor.types import Segment


# Non-greedy and non-nesting: an inner opener is literal text, an unterminated opener stays prose.
_REASONING_RE = re.compile(
	re.escape(REASONING_OPEN_TAG) + r"(.*?)" + re.escape(REASONING_CLOSE_TAG),
	re.DOTALL,
)


def parse_reasoning_blocks(text: str) -> List[Segment]:
	segments: List[Segment] = []
	last_index = 0
	for match in _REASONING_RE.finditer(text):
		if match.start() > last_index:
			segments.append(Segment(kind="prose", text=text[last_index : match.start()].strip()))
		segments.append(Segment(kind="reasoning", text=match.group(1).strip()))
		last_index = match.end()
	if last_index < len(text):
		segments.append(Segment(kind="prose", text=text[last_index:].strip()))
	return [segment for segment in segments if segment.text]


def has_reasoning(segments: Iterable[Segment]) -> bool:
	return any(segment.kind == "reasoning" for segment in segments)
