from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from mentis.backend.logging_config import set_request_id


logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next) -> Response:
		request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
		request.state.request_id = request_id
		set_request_id(request_id)
		start = time.perf_counter()
		try:
			response = await call_next(request)
		finally:
			process_time = time.perf_counter() - start
			logger.info("%s %s handled in %.3fs", request.method, request.url.path, process_time)
		response.headers["X-Request-ID"] = request_id
		response.headers["X-Process-Time"] = f"{process_time:.6f}"
		return response
