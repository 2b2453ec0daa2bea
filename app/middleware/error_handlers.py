"""
Exception handling and request logging middleware for the HR Insights API
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError as PydanticValidationError

from app.utils.exceptions import HRInsightsError, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """Standard error envelope"""
    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}

    content = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail
    }
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers={"X-Request-ID": request_id}
    )


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


async def hr_insights_exception_handler(request: Request, exc: HRInsightsError) -> JSONResponse:
    """Turns an HRInsightsError raised in a route or dependency into its HTTP status"""
    request_id = _request_id(request)
    http_exc = map_to_http_exception(exc)
    log = logger.error if http_exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={
            "request_id": request_id,
            "error_code": exc.error_code,
            "details": exc.details,
            "status_code": http_exc.status_code,
        }
    )
    return error_response(request_id, http_exc.status_code, http_exc.detail)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost handler: request ids plus a JSON envelope for anything the routes let escape"""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        except HRInsightsError as exc:
            return await hr_insights_exception_handler(request, exc)

        except PydanticValidationError as exc:
            # model construction inside a handler, not request parsing
            logger.error(
                f"Data validation error in {request.method} {request.url.path}: {exc}",
                extra={"request_id": request_id, "validation_errors": exc.errors()}
            )
            return error_response(request_id, 400, {
                "error": "Data validation failed",
                "message": "Invalid data format or values",
                "validation_errors": exc.errors(include_context=False, include_url=False),
            })

        except HTTPException as exc:
            logger.warning(
                f"HTTP exception in {request.method} {request.url.path}: {exc.detail}",
                extra={"request_id": request_id, "status_code": exc.status_code}
            )
            return error_response(request_id, exc.status_code, exc.detail)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {exc}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "traceback": traceback.format_exc(),
                },
                exc_info=True
            )
            return error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and timing; bodies are not logged since they carry resumes"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, "request_id", None)

        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "content_type": request.headers.get("content-type"),
                "content_length": request.headers.get("content-length"),
                "user_id": request.headers.get("x-user-id"),
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {processing_time:.3f}s",
                extra={"request_id": request_id, "exception": str(exc)}
            )
            raise

        processing_time = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code, "processing_time": processing_time}
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Flags slow requests and adds an X-Processing-Time header"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response
