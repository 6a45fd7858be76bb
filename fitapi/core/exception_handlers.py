import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("fitapi")

# 서비스 예외가 아닌 HTTPException (인증 의존성 등) 의 오류 코드
STATUS_ERROR_CODES = {
    401: "AUTH_001",
    403: "AUTH_002",
    404: "NOT_FOUND_001",
    405: "METHOD_NOT_ALLOWED",
}


def _describe(request: Request) -> str:
    client = request.client.host if request.client else "-"
    return f"{request.method} {request.url.path} from {client}"


def _error_body(code: str, message: str, details: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details},
    }


def _serializable_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # pydantic 오류의 ctx 에는 예외 객체가 들어갈 수 있어 필요한 필드만 남김
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in errors
    ]


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    message = f"[{exc.error_code}] {_describe(request)} -> {exc.status_code}: {exc.message}"
    if exc.status_code >= 500:
        logger.error(message, exc_info=exc)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=exc.status_code, content=exc.detail, headers=exc.headers
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    code = STATUS_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = f"[{code}] {_describe(request)} -> {exc.status_code}: {exc.detail}"
    if exc.status_code >= 500:
        logger.error(message, exc_info=exc)
    else:
        logger.warning(message)

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(code, str(exc.detail), {}),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = _serializable_errors(exc.errors())
    logger.warning(f"[VALIDATION_001] {_describe(request)} -> 422: {errors}")
    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_001", "Validation failed", {"errors": errors}),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        f"[Unhandled Error] {_describe(request)}: {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
