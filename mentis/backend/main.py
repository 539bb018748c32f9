from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from mentis.backend import constants
from mentis.backend.logging_config import configure_logging
from mentis.backend.middleware import RequestContextMiddleware
from mentis.backend.response import error_response
from mentis.backend.routers import conversations, health, study_tools, tutor
from mentis.backend.services import tutor_service
from mentis.backend.tutor.errors import TutorServiceError
from mentis.backend.tutor.orchestrator import ResponseOrchestrator


logger = logging.getLogger(__name__)


def create_app(orchestrator: Optional[ResponseOrchestrator] = None) -> FastAPI:
	configure_logging()
	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
	)
	app.state.orchestrator = orchestrator or tutor_service.build_orchestrator()
	_register_middleware(app)
	_register_handlers(app)
	_register_routers(app)
	return app


def _register_middleware(app: FastAPI) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(GZipMiddleware, minimum_size=1024)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=constants.DEFAULT_CORS_ALLOW_ORIGINS,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=constants.DEFAULT_TRUSTED_HOSTS,
	)


def _register_routers(app: FastAPI) -> None:
	app.include_router(tutor.router)
	app.include_router(conversations.router)
	app.include_router(study_tools.router)
	app.include_router(health.router)


def _register_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		# Routers raise with detail={code, message} built from a TutorServiceError.
		code = f"http_{exc.status_code}"
		message = exc.detail if isinstance(exc.detail, str) else "Request failed."
		if isinstance(exc.detail, dict):
			code = str(exc.detail.get("code") or code)
			message = str(exc.detail.get("message") or message)
		return JSONResponse(
			status_code=exc.status_code,
			content=error_response(code=code, message=message, request=request),
		)

	@app.exception_handler(TutorServiceError)
	async def handle_tutor_service_error(request: Request, exc: TutorServiceError) -> JSONResponse:
		return JSONResponse(
			status_code=exc.status_code,
			content=error_response(code=exc.code, message=exc.message, request=request),
		)

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
		evidence = []
		for issue in exc.errors():
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid request.")
			evidence.append(f"{loc}: {msg}" if loc else msg)
		payload = error_response(
			code="validation_error",
			message="Request validation failed.",
			request=request,
			evidence=evidence,
		)
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		logger.exception("unhandled error on %s %s", request.method, request.url.path)
		return JSONResponse(
			status_code=500,
			content=error_response(code="internal_error", message="Internal server error.", request=request),
		)


app = create_app()
