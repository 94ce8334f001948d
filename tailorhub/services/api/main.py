"""TailorHub HTTP API: app factory, middleware and error mapping.

Run with `uvicorn --factory tailorhub.services.api.main:create_app`; settings
are read from the environment.
"""

import asyncio
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tailorhub.bootstrap import build_services
from tailorhub.common.config import Settings
from tailorhub.common.errors import TailorHubError
from tailorhub.common.logging import configure_logging, logger, trace_id_ctx
from tailorhub.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from tailorhub.common.startup import log_startup_config
from tailorhub.common.tracing import instrument_app, setup_tracing
from tailorhub.services.notification.routes import router as notification_router
from tailorhub.services.notification.service import PushSender
from tailorhub.services.orders.routes import router as orders_router
from tailorhub.services.payments.routes import router as payments_router
from tailorhub.services.wallet.routes import router as wallet_router


def create_app(settings: Settings | None = None, push_sender: PushSender | None = None) -> FastAPI:
    """Build the service graph once and expose it through FastAPI."""

    settings = settings or Settings()
    configure_logging(settings.service_name, settings.log_level)
    if settings.otel_exporter_otlp_endpoint:
        setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
    log_startup_config(settings)
    services = build_services(settings, push_sender)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Run the notification dispatcher with the application lifecycle."""

        dispatcher_task = None
        if settings.run_background_workers:
            dispatcher_task = asyncio.create_task(
                services.dispatcher.run_forever(settings.notification_dispatch_interval_seconds)
            )
        yield
        if dispatcher_task is not None:
            dispatcher_task.cancel()
        services.engine.dispose()

    app = FastAPI(title="TailorHub API", lifespan=lifespan)
    app.state.services = services
    if settings.otel_exporter_otlp_endpoint:
        instrument_app(app)

    @app.middleware("http")
    async def observe_requests(request: Request, call_next):
        """Bind a trace id and record request count and latency."""

        trace_id = request.headers.get("x-trace-id") or str(uuid4())
        trace_token = trace_id_ctx.set(trace_id)
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-trace-id"] = trace_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            trace_id_ctx.reset(trace_token)

    @app.exception_handler(TailorHubError)
    async def handle_app_error(_: Request, exc: TailorHubError):
        if exc.status_code >= 500:
            logger.error("request failed error=%s message=%s", exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "ValidationError", "message": message},
        )

    app.include_router(wallet_router)
    app.include_router(orders_router)
    app.include_router(payments_router)
    app.include_router(notification_router)

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    return app

