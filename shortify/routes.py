"""FastAPI route definitions for the ShortiFy REST API.

API Endpoint Overview
=====================
::
    GET  /health            database + cache checks
    GET  /health/ready      database + cache checks
    GET  /health/live       process liveness only

    POST /api/shortify
        ├─ ShortifyRequest (request body)
        ├─ 201 Created  (new mapping, Location header)
        ├─ 200 OK       (mapping already existed)
        ├─ 400          (invalid URL / scheme)
        └─ 500          (short code generation failed)

    GET  /api/unshortify/{short_code}
        ├─ 200 OK
        └─ 404          (unknown short code)

Key Behaviours
===============
- Endpoints only translate between HTTP and UrlRegistry; every failure is a
  ShortifyError rendered as a problem document by the handler in main.py.
- Database and cache connections are injected via the RequestContext dependency.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text

from shortify.dependencies import RequestContext, get_request_context, get_url_registry
from shortify.enums import HealthStatus
from shortify.registry import UrlRegistry
from shortify.schemas import HealthResponse, ShortifyRequest, ShortifyResponse, UnshortifyResponse

__all__ = ["router"]

router = APIRouter()


async def _check_dependencies(ctx: RequestContext) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    overall = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=overall, database=db_status, cache=cache_status)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(response: Response, ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    health = await _check_dependencies(ctx)
    if health.status is HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    ctx.logger.info(f"Health check completed: {health.status.value}")
    return health


@router.get("/health/ready", response_model=HealthResponse, tags=["health"])
async def readiness_check(response: Response, ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    return await health_check(response, ctx)


@router.get("/health/live", response_model=HealthResponse, response_model_exclude_none=True, tags=["health"])
async def liveness_check() -> HealthResponse:
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.post(
    "/api/shortify",
    response_model=ShortifyResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["urls"],
)
async def shortify(
    payload: ShortifyRequest,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    registry: UrlRegistry = Depends(get_url_registry),
) -> ShortifyResponse:
    result = await registry.create(payload.original_url)
    record = result.record

    if result.created:
        response.headers["Location"] = f"/api/unshortify/{record.short_code}"
    else:
        response.status_code = status.HTTP_200_OK

    ctx.logger.info(
        f"Shortify {result.outcome.value}: {record.short_code}",
        extra={"operation": "shortify", "short_code": record.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortifyResponse(
        short_code=record.short_code,
        short_url=record.shortened_url,
        original_url=record.original_url,
    )


@router.get("/api/unshortify/{short_code}", response_model=UnshortifyResponse, tags=["urls"])
async def unshortify(
    short_code: str,
    registry: UrlRegistry = Depends(get_url_registry),
) -> UnshortifyResponse:
    resolved = await registry.resolve(short_code)
    return UnshortifyResponse(
        original_url=resolved.original_url,
        short_code=resolved.short_code,
        short_url=resolved.shortened_url,
    )
