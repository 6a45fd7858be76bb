import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("fitapi")

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답 로그 (요청 ID, 소요 시간)

    예외 응답은 exception_handlers 에서 이미 로그를 남기므로 여기서는 상태 코드 기준 레벨만 정합니다.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        started = time.perf_counter()
        summary = f"{request.method} {request.url.path} [{request_id}]"

        logger.debug(f"[Request] {summary}")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[Unhandled Error] {summary}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, f"[Response] {summary} -> {response.status_code} in {elapsed_ms:.1f}ms")
        return response
