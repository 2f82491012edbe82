"""Request/response middleware chain around the route handlers."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from stack_csp.models.overrides import PolicyOverrides

logger = structlog.get_logger()


@dataclass
class RequestContext:
    """Per-request state shared by every middleware."""

    request_id: str = ""
    user_agent: str = ""
    csp_overrides: PolicyOverrides = field(default_factory=PolicyOverrides)
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.request_id:
            self.request_id = uuid4().hex[:8]


def error_response(context: RequestContext, error: str = "Internal server error") -> Response:
    """Structured 500 used whenever a response cannot be completed safely."""
    return JSONResponse(
        status_code=500,
        content={
            "error": error,
            "request_id": context.request_id,
        },
    )


class Middleware(abc.ABC):
    """Base class for middleware in the pipeline."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abc.abstractmethod
    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        """Return None to continue, or a Response to short-circuit."""
        ...

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        return response


class MiddlewarePipeline:
    """Runs request handlers in order and response handlers in reverse.

    Any exception fails the request closed with a 500: a response that
    skipped a middleware may be missing its security headers.
    """

    def __init__(self) -> None:
        self._middleware: list[Middleware] = []

    def add(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)
        logger.info("middleware_registered", name=middleware.name)

    def get_middleware(self, cls: type[Middleware]) -> Middleware | None:
        for mw in self._middleware:
            if isinstance(mw, cls):
                return mw
        return None

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        for mw in self._middleware:
            try:
                result = await mw.process_request(request, context)
            except Exception:
                logger.exception("middleware_request_error", middleware=mw.name)
                return error_response(context)
            if isinstance(result, Response):
                logger.info("middleware_short_circuit", middleware=mw.name)
                return result
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        for mw in reversed(self._middleware):
            try:
                response = await mw.process_response(response, context)
            except Exception:
                logger.exception("middleware_response_error", middleware=mw.name)
                return error_response(context)
        return response
