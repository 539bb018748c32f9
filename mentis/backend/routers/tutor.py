from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from mentis.backend import constants
from mentis.backend.dependencies import get_orchestrator, http_error, owner_id_from_request
from mentis.backend.response import success_response
from mentis.backend.schemas import ApiEnvelope, TutorRespondRequest, TutorResponseData, TutorStreamRequest
from mentis.backend.services import tutor_service
from mentis.backend.tutor.errors import TutorServiceError
from mentis.backend.tutor.i18n import list_languages
from mentis.backend.tutor.orchestrator import ResponseOrchestrator
from mentis.backend.tutor.prompts import list_subjects
from mentis.backend.tutor.reasoning import parse_reasoning_blocks


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tutor", tags=["tutor"])


def _encode_sse(event: str, data: dict) -> str:
	payload = json.dumps(data, ensure_ascii=False)
	return f"event: {event}\ndata: {payload}\n\n"


def _chunk_text(text: str, size: int = constants.STREAM_CHUNK_CHARS) -> List[str]:
	return [text[index : index + size] for index in range(0, len(text), size)]


def _response_data(outcome: tutor_service.ChatOutcome) -> Dict[str, object]:
	data = TutorResponseData(
		conversation_id=outcome.conversation.conversation_id,
		title=outcome.conversation.title,
		text=outcome.result.text,
		provider_used=outcome.result.provider_used,
		transient_status=list(outcome.result.transient_status),
		segments=[segment.as_dict() for segment in parse_reasoning_blocks(outcome.result.text)],
	)
	return data.model_dump()


async def _relay_statuses(task: asyncio.Task, statuses: asyncio.Queue) -> AsyncIterator[str]:
	"""Yield status labels as they arrive until ``task`` finishes.

	Closing the generator early (client disconnect) cancels ``task``.
	"""
	next_status: Optional[asyncio.Future] = None
	try:
		while True:
			next_status = asyncio.ensure_future(statuses.get())
			done, _pending = await asyncio.wait({task, next_status}, return_when=asyncio.FIRST_COMPLETED)
			if next_status not in done:
				break
			yield next_status.result()
		while not statuses.empty():
			yield statuses.get_nowait()
	finally:
		if next_status is not None and not next_status.done():
			next_status.cancel()
		if not task.done():
			task.cancel()


@router.get("/languages", response_model=ApiEnvelope)
def languages(request: Request):
	return success_response(request=request, data={"languages": list_languages(), "default": "en"})


@router.get("/subjects", response_model=ApiEnvelope)
def subjects(request: Request):
	return success_response(request=request, data={"subjects": list_subjects()})


@router.post("/respond", response_model=ApiEnvelope)
async def respond(
	request: Request,
	payload: TutorRespondRequest,
	background_tasks: BackgroundTasks,
	owner_id: str = Depends(owner_id_from_request),
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	try:
		conversation, is_new = tutor_service.open_conversation(
			owner_id=owner_id,
			conversation_id=payload.conversation_id,
			subject=payload.subject,
			first_message=payload.user_input,
		)
		outcome = await tutor_service.respond(
			orchestrator,
			owner_id=owner_id,
			conversation=conversation,
			is_new_conversation=is_new,
			user_input=payload.user_input,
			mode=payload.mode,
			language=payload.language,
			attachment=payload.attachment.to_attachment() if payload.attachment else None,
		)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	if outcome.is_new_conversation:
		background_tasks.add_task(
			tutor_service.auto_title,
			orchestrator,
			owner_id=owner_id,
			conversation_id=conversation.conversation_id,
			first_message=payload.user_input,
		)
	return success_response(request=request, data=_response_data(outcome))


@router.post("/stream")
async def stream(
	request: Request,
	payload: TutorStreamRequest,
	owner_id: str = Depends(owner_id_from_request),
	orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
):
	async def generate() -> AsyncIterator[str]:
		try:
			conversation, is_new = tutor_service.open_conversation(
				owner_id=owner_id,
				conversation_id=payload.conversation_id,
				subject=payload.subject,
				first_message=payload.user_input,
			)
		except TutorServiceError as exc:
			yield _encode_sse("error", {"code": exc.code, "message": exc.message})
			return
		yield _encode_sse(
			"meta",
			{"conversation_id": conversation.conversation_id, "title": conversation.title, "mode": payload.mode},
		)

		statuses: asyncio.Queue[str] = asyncio.Queue()
		task = asyncio.create_task(
			tutor_service.respond(
				orchestrator,
				owner_id=owner_id,
				conversation=conversation,
				is_new_conversation=is_new,
				user_input=payload.user_input,
				mode=payload.mode,
				language=payload.language,
				attachment=payload.attachment.to_attachment() if payload.attachment else None,
				on_status=statuses.put_nowait,
			)
		)
		async with aclosing(_relay_statuses(task, statuses)) as relay:
			async for label in relay:
				yield _encode_sse("status", {"label": label})

		try:
			outcome = task.result()
		except TutorServiceError as exc:
			yield _encode_sse("error", {"code": exc.code, "message": exc.message})
			return
		except ValueError as exc:
			yield _encode_sse("error", {"code": "tutor_bad_request", "message": str(exc)})
			return
		except Exception:
			logger.exception("tutor stream failed")
			yield _encode_sse("error", {"code": "tutor_unavailable", "message": "Tutor stream failed."})
			return

		for chunk in _chunk_text(outcome.result.text):
			yield _encode_sse("delta", {"text": chunk})
		yield _encode_sse("done", _response_data(outcome))

		if outcome.is_new_conversation:
			title = await tutor_service.auto_title(
				orchestrator,
				owner_id=owner_id,
				conversation_id=conversation.conversation_id,
				first_message=payload.user_input,
			)
			if title:
				yield _encode_sse("title", {"conversation_id": conversation.conversation_id, "title": title})

	return StreamingResponse(
		generate(),
		media_type="text/event-stream",
		headers={
			"Cache-Control": "no-cache",
			"Connection": "keep-alive",
			"X-Accel-Buffering": "no",
		},
	)
