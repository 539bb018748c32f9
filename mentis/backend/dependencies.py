from __future__ import annotations

from fastapi import HTTPException, Request

from mentis.backend import constants
from mentis.backend.tutor.errors import TutorServiceError
from mentis.backend.tutor.orchestrator import ResponseOrchestrator


def get_orchestrator(request: Request) -> ResponseOrchestrator:
	return request.app.state.orchestrator


def owner_id_from_request(request: Request) -> str:
	owner_id = request.headers.get("X-User-ID", "").strip()
	return owner_id or constants.ANONYMOUS_USER_ID


def http_error(exc: TutorServiceError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"code": exc.code, "message": exc.message},
	)
