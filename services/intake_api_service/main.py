from __future__ import annotations

import os
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.shared.config import load_runtime_config
from services.shared.contracts import ApplyResponse, HealthResponse
from services.shared.errors import IntakeError
from services.shared.logging_utils import log_event
from services.shared.pipeline import SubmissionPipeline, build_pipeline


APPLY_PATHS = ("/api/apply", "/v1/apply")
ALLOWED_METHODS = "POST, OPTIONS"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ALLOWED_METHODS,
    "Access-Control-Allow-Headers": "Content-Type",
}


def _json(status_code: int, body: ApplyResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={**CORS_HEADERS, **(headers or {})},
    )


def create_app(pipeline: SubmissionPipeline | None = None) -> FastAPI:
    if pipeline is None:
        pipeline = build_pipeline(load_runtime_config())

    app = FastAPI(title="intake-api-service", version="0.1.0")

    @app.get("/v1/healthz", response_model=HealthResponse)
    def healthz() -> HealthResponse:
        return HealthResponse(status="ok")

    async def apply(request: Request) -> JSONResponse:
        trace_id = str(uuid4())
        try:
            await pipeline.ingest(request.headers.get("content-type"), request.stream(), trace_id=trace_id)
        except IntakeError as exc:
            log_event(
                "warning" if exc.status_code < 500 else "error",
                "submission_failed",
                trace_id=trace_id,
                error_type=type(exc).__name__,
                status_code=exc.status_code,
                error=str(exc),
            )
            return _json(exc.status_code, ApplyResponse(ok=False, error=exc.public_message))
        except Exception as exc:
            log_event(
                "error",
                "submission_failed",
                trace_id=trace_id,
                error_type=type(exc).__name__,
                status_code=500,
                error=str(exc),
            )
            return _json(500, ApplyResponse(ok=False, error="Internal server error"))
        return _json(200, ApplyResponse(ok=True))

    def preflight() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    async def method_not_allowed(request: Request, exc: StarletteHTTPException) -> Response:
        # every method other than POST and OPTIONS on the apply paths lands here
        if exc.status_code != 405 or request.url.path not in APPLY_PATHS:
            return await http_exception_handler(request, exc)
        return _json(405, ApplyResponse(ok=False, error="Method not allowed"), headers={"Allow": ALLOWED_METHODS})

    app.add_exception_handler(StarletteHTTPException, method_not_allowed)

    for path in APPLY_PATHS:
        app.add_api_route(path, apply, methods=["POST"])
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("services.intake_api_service.main:create_app", factory=True, host="0.0.0.0", port=port)
