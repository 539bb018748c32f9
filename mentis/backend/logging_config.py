"""Single-line JSON logging with the current request id attached."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from typing import Optional


_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str]) -> None:
	_request_id.set(request_id)


def current_request_id() -> Optional[str]:
	return _request_id.get()


class JSONFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		base = {
			"level": record.levelname,
			"ts": round(time.time(), 3),
			"logger": record.name,
			"msg": record.getMessage(),
		}
		request_id = current_request_id()
		if request_id:
			base["request_id"] = request_id
		if record.exc_info:
			base["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(base, ensure_ascii=False)


def configure_logging(level: int | str | None = None) -> logging.Logger:
	resolved = level or os.getenv("TUTOR_LOG_LEVEL", "INFO").strip().upper() or "INFO"
	if isinstance(resolved, str) and not isinstance(logging.getLevelName(resolved), int):
		resolved = "INFO"
	root = logging.getLogger()
	root.setLevel(resolved)
	for handler in root.handlers:
		if isinstance(handler.formatter, JSONFormatter):
			return root
	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(JSONFormatter())
	root.addHandler(handler)
	return root
