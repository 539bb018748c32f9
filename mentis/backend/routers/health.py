from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from mentis.backend import constants
from mentis.backend.dependencies import get_orchestrator
from mentis.backend.response import success_response
from mentis.backend.schemas import ApiEnvelope
from mentis.backend.services import tutor_service
from mentis.backend.tutor.orchestrator import ResponseOrchestrator


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/summary", response_model=ApiEnvelope)
def get_summary(request: Request, orchestrator: ResponseOrchestrator = Depends(get_orchestrator)):
	return success_response(
		request=request,
		data={
			"app": constants.APP_NAME,
			"version": constants.APP_VERSION,
			"providers": tutor_service.provider_status(orchestrator),
		},
	)
