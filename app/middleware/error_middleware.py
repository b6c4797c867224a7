"""
Error Handling Middleware

Turns exceptions that escape a route into a JSON error report with an
X-Error-ID header matching the log entry.
"""

from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import settings
from app.services.error_handler import ErrorHandlerService, error_handler


class ErrorHandlingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app: ASGIApp, handler: ErrorHandlerService = error_handler):
        super().__init__(app)
        self.handler = handler

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # HTTPExceptions never get here; FastAPI turns them into responses further in
        try:
            return await call_next(request)
        except Exception as e:
            report = self.handler.handle_error(
                e,
                operation=f"{request.method} {request.url.path}",
                user_id=getattr(request.state, "user_id", None),
                context={
                    "client_ip": request.client.host if request.client else None,
                    "user_agent": request.headers.get("user-agent"),
                },
            )
            return JSONResponse(
                status_code=report.status_code,
                content=report.to_response(include_debug=settings.debug),
                headers={"X-Error-ID": report.error_id},
            )
