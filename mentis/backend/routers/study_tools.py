from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from mentis.backend.dependencies import get_orchestrator, http_error
from mentis.backend.response import success_response
from mentis.backend.schemas import ApiEnvelope, NotesRequest, PodcastRequest, StudyToolRequest
from mentis.backend.services import study_tools_service
from mentis.backend.tutor.errors import TutorServiceError
from mentis.backend.tutor.orchestrator import ResponseOrchestrator


router = APIRouter(prefix="/api/study-tools", tags=["study-tools"])


@router.post("/flashcards", response_model=ApiEnvelope)
async def create_flashcards(
	request: Request,
	payload: StudyToolRequest,
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	try:
		deck = await study_tools_service.generate_flashcards(
			orchestrator,
			payload.topic,
			payload.language,
			content=payload.content,
		)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"deck": deck})


@router.post("/quiz", response_model=ApiEnvelope)
async def create_quiz(
	request: Request,
	payload: StudyToolRequest,
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	try:
		quiz = await study_tools_service.generate_quiz(
			orchestrator,
			payload.topic,
			payload.language,
			content=payload.content,
		)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"quiz": quiz})


@router.post("/notes", response_model=ApiEnvelope)
async def create_notes(
	request: Request,
	payload: NotesRequest,
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	try:
		notes = await study_tools_service.generate_notes(orchestrator, payload.content, payload.language)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"notes": notes})


@router.post("/podcast", response_model=ApiEnvelope)
async def create_podcast(
	request: Request,
	payload: PodcastRequest,
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	try:
		podcast = await study_tools_service.generate_podcast_script(orchestrator, payload.notes, payload.language)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"podcast": podcast})
