"""Content-Security-Policy header injection middleware."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog
from starlette.requests import Request
from starlette.responses import Response

from stack_csp.middleware.header_names import HeaderNameResolver
from stack_csp.middleware.pipeline import Middleware, RequestContext, error_response
from stack_csp.models.overrides import PolicyOverrides
from stack_csp.policy.config import Config
from stack_csp.policy.errors import CspError

logger = structlog.get_logger()

_STATE_KEY = "csp_overrides"
_COMPILE_ERROR = "Invalid Content-Security-Policy configuration"

Rules = Mapping[str, Iterable[str]]


def set_csp_overrides(
    request: Request,
    *,
    reset: str | None = None,
    remove: Mapping[str, Rules] | None = None,
    add: Mapping[str, Rules] | None = None,
) -> PolicyOverrides:
    """Declare this request's policy changes from inside a route handler.

    Example:
        set_csp_overrides(request, add={"enforce": {"img-src": ["cdn.example.com"]}})
    """
    overrides = PolicyOverrides(reset=reset, remove=dict(remove or {}), add=dict(add or {}))
    setattr(request.state, _STATE_KEY, overrides)
    return overrides


def get_csp_overrides(request: Request) -> PolicyOverrides:
    """Overrides declared for this request, or an empty set."""
    overrides = getattr(request.state, _STATE_KEY, None)
    if overrides is None:
        return PolicyOverrides()
    if isinstance(overrides, PolicyOverrides):
        return overrides
    return PolicyOverrides.model_validate(overrides)


class CspHeaders(Middleware):
    """Compile the CSP policies for each response and set their headers.

    - The Config passed in is a template and is never mutated; every
      response compiles a private copy with the request's overrides
    - Header names depend on the client's user-agent
    - Empty policies produce no header
    - Any compile failure replaces the response with a 500 and no CSP header
    - A disabled instance passes responses through untouched
    """

    def __init__(
        self,
        config: Config,
        resolver: HeaderNameResolver | None = None,
        enabled: bool = True,
    ) -> None:
        self._template = config
        self._resolver = resolver or HeaderNameResolver()
        self.enabled = enabled

    @property
    def template(self) -> Config:
        return self._template

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        context.user_agent = request.headers.get("user-agent", "")
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        if not self.enabled:
            return response
        try:
            values = self._template.copy().compile(context.csp_overrides)
        except CspError as exc:
            logger.error(
                "csp_compile_failed",
                error=str(exc),
                directive=exc.directive,
                value=exc.value,
                request_id=context.request_id,
            )
            return error_response(context, _COMPILE_ERROR)
        except Exception:
            logger.exception("csp_compile_error", request_id=context.request_id)
            return error_response(context, _COMPILE_ERROR)

        names = self._resolver.resolve(context.user_agent)
        if values.enforce:
            response.headers[names.enforce] = values.enforce
        if values.report:
            response.headers[names.report] = values.report
        return response
