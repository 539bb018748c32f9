from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from mentis.backend.dependencies import http_error, owner_id_from_request
from mentis.backend.response import success_response
from mentis.backend.schemas import ApiEnvelope, ConversationRenameRequest
from mentis.backend.services import chat_session_service
from mentis.backend.tutor.errors import TutorServiceError


router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=ApiEnvelope)
def list_conversations(request: Request, owner_id: str = Depends(owner_id_from_request)):
	conversations = chat_session_service.list_conversations(owner_id)
	return success_response(
		request=request,
		data={"conversations": [conversation.summary() for conversation in conversations]},
	)


@router.get("/{conversation_id}", response_model=ApiEnvelope)
def get_conversation(request: Request, conversation_id: str, owner_id: str = Depends(owner_id_from_request)):
	try:
		conversation = chat_session_service.get_conversation(owner_id, conversation_id)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"conversation": conversation.as_dict()})


@router.patch("/{conversation_id}", response_model=ApiEnvelope)
def rename_conversation(
	request: Request,
	conversation_id: str,
	payload: ConversationRenameRequest,
	owner_id: str = Depends(owner_id_from_request),
):
	try:
		conversation = chat_session_service.rename_conversation(owner_id, conversation_id, payload.title)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"conversation": conversation.summary()})


@router.delete("/{conversation_id}", response_model=ApiEnvelope)
def delete_conversation(request: Request, conversation_id: str, owner_id: str = Depends(owner_id_from_request)):
	try:
		chat_session_service.delete_conversation(owner_id, conversation_id)
	except TutorServiceError as exc:
		raise http_error(exc) from exc
	return success_response(request=request, data={"deleted": conversation_id})
