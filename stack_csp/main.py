"""FastAPI application wiring for the CSP middleware."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import Response

from stack_csp.config.loader import build_config, load_settings
from stack_csp.logging_config import bind_request_context, clear_request_context, setup_logging
from stack_csp.middleware.csp_headers import CspHeaders, get_csp_overrides
from stack_csp.middleware.header_names import HeaderNameResolver
from stack_csp.middleware.pipeline import MiddlewarePipeline, RequestContext
from stack_csp.policy.config import Config

logger = structlog.get_logger()


def _build_pipeline(config: Config, enabled: bool = True) -> MiddlewarePipeline:
    """Build the ordered middleware pipeline."""
    pipeline = MiddlewarePipeline()
    pipeline.add(CspHeaders(config, HeaderNameResolver(), enabled=enabled))
    return pipeline


def create_app(config: Config | None = None, title: str = "Stack CSP") -> FastAPI:
    """Create an app whose responses carry the compiled CSP headers.

    When *config* is None the template is seeded from the settings' policy
    file at startup. Route handlers adjust their own response's policies
    with :func:`stack_csp.middleware.csp_headers.set_csp_overrides`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = load_settings()
        setup_logging(log_level=settings.log_level, json_format=settings.log_json)

        template = config if config is not None else build_config(settings)
        app.state.csp_pipeline = _build_pipeline(template, enabled=settings.enabled)
        logger.info("csp_app_started", enabled=settings.enabled)

        yield

        app.state.csp_pipeline = None
        logger.info("csp_app_stopped")

    app = FastAPI(title=title, lifespan=lifespan)
    app.state.csp_pipeline = None

    @app.middleware("http")
    async def csp_pipeline(request: Request, call_next) -> Response:
        pipeline: MiddlewarePipeline | None = request.app.state.csp_pipeline
        if pipeline is None:
            return Response(content="CSP pipeline not initialized", status_code=503)

        context = RequestContext()
        bind_request_context(context.request_id, request.url.path)
        try:
            short_circuit = await pipeline.process_request(request, context)
            if short_circuit is not None:
                return await pipeline.process_response(short_circuit, context)

            response = await call_next(request)
            context.csp_overrides = get_csp_overrides(request)
            return await pipeline.process_response(response, context)
        finally:
            clear_request_context()

    @app.get("/health")
    async def health(request: Request):
        """Health check: which policies the template carries."""
        pipeline: MiddlewarePipeline = request.app.state.csp_pipeline
        csp = pipeline.get_middleware(CspHeaders)
        template = csp.template if isinstance(csp, CspHeaders) else Config()
        return {
            "status": "healthy",
            "enforce": bool(template.enforce.rules),
            "report": bool(template.report.rules),
        }

    return app


app = create_app()
