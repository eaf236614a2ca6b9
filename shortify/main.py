"""FastAPI application entry point for the ShortiFy service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate     │
    │ settings,    │
    │ logger, Redis│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ create tables│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve        │
    │ requests     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Close Redis, │
    │ dispose DB   │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shortify.main:app --host 0.0.0.0 --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/api/shortify \
         -H "Content-Type: application/json" \
         -d '{"original_url": "https://example.com/very/long/path"}'

    curl http://localhost:8080/api/unshortify/aBc1Xy

Key Behaviours
===============
- Settings are validated before the first request is served.
- Every ShortifyError and request validation error is rendered as a
  problem document with a stable title and status.
- Each request is logged with method, path, status and elapsed time.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortify.config import get_settings
from shortify.database import close_db, init_db
from shortify.dependencies import _service_manager
from shortify.exceptions import ShortifyError
from shortify.routes import router
from shortify.schemas import ProblemDetails

settings = get_settings()
logger = logging.getLogger(settings.APP_NAME)

PROBLEM_CONTENT_TYPE = "application/problem+json"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    await init_db()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Shorten long URLs and resolve short codes back to them",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"HTTP {request.method} {request.url.path} responded {response.status_code} in {elapsed_ms:.4f} ms"
    )
    return response


def _problem(status_code: int, title: str, detail: str | None) -> JSONResponse:
    body = ProblemDetails(title=title, status=status_code, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(), media_type=PROBLEM_CONTENT_TYPE)


@app.exception_handler(ShortifyError)
async def shortify_error_handler(request: Request, exc: ShortifyError) -> JSONResponse:
    return _problem(exc.status_code, exc.title, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return _problem(status.HTTP_400_BAD_REQUEST, "Invalid Request", detail)


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
