import os
import time
import hashlib
from typing import Dict
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config import settings
from .routers.analysis import router as analysis_router
from .routers.body_shape import router as body_shape_router
from .routers.deps import get_ai_quota
from .routers.recommend import router as recommend_router


logger = structlog.get_logger("shapefit")


app = FastAPI(title="Shapefit Advisor", version="1.0.0")

# Storefront widget calls in from arbitrary shop domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Token buckets keyed by client ip: (tokens, last refill time)
_buckets: Dict[str, tuple[float, float]] = {}
_last_prune = 0.0
BUCKET_PRUNE_INTERVAL = 60.0


def _prune_buckets(now: float, refill_rate: float, capacity: float) -> None:
    # a bucket that has refilled to capacity is identical to a fresh one
    for ident, (tokens, last) in list(_buckets.items()):
        if tokens + refill_rate * (now - last) >= capacity:
            del _buckets[ident]


def _rate_limit(ident: str, requests_per_min: int, burst: int) -> bool:
    global _last_prune
    refill_rate = requests_per_min / 60.0
    capacity = float(burst)
    now = time.time()
    if now - _last_prune >= BUCKET_PRUNE_INTERVAL:
        _prune_buckets(now, refill_rate, capacity)
        _last_prune = now
    tokens, last = _buckets.get(ident, (capacity, now))
    tokens = min(capacity, tokens + refill_rate * (now - last))
    if tokens < 1.0:
        _buckets[ident] = (tokens, now)
        return False
    _buckets[ident] = (tokens - 1.0, now)
    return True


def _request_id(request: Request) -> str:
    return hashlib.md5(f"{request.client.host if request.client else 'unknown'}{time.time()}".encode()).hexdigest()[:8]


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    if settings.ai_enabled and (settings.ai_provider or "openai").lower() == "openai" and not settings.openai_api_key:
        errors.append("OPENAI_API_KEY is not set; recommendations will use the scoring algorithm")
    if not 0 <= settings.minimum_match_score <= 100:
        errors.append("MINIMUM_MATCH_SCORE must be between 0 and 100")
    if settings.number_of_suggestions < 1:
        errors.append("NUMBER_OF_SUGGESTIONS must be at least 1")
    if settings.catalog_max_pages < 1:
        errors.append("CATALOG_MAX_PAGES must be at least 1")
    if not 0 < settings.budget_low_max <= settings.budget_medium_max <= settings.budget_high_max:
        errors.append("BUDGET_LOW_MAX <= BUDGET_MEDIUM_MAX <= BUDGET_HIGH_MAX must hold and be positive")
    if settings.ai_rate_limiting and (settings.ai_requests_per_minute < 1 or settings.ai_requests_per_day < 1):
        errors.append("AI_REQUESTS_PER_MINUTE and AI_REQUESTS_PER_DAY must be at least 1")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        else:
            for e in errors:
                logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = _request_id(request)
    resp = None

    try:
        client_ip = request.client.host if request.client else "unknown"
        if not _rate_limit(client_ip, settings.rate_limit_per_min, settings.rate_limit_burst):
            logger.warning("rate_limit_exceeded", client_ip=client_ip, request_id=request_id)
            resp = JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
            return resp

        logger.info("request_started",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    client_ip=client_ip,
                    user_agent=request.headers.get("user-agent", "unknown"))

        resp = await call_next(request)
        return resp

    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error("request_failed",
                     request_id=request_id,
                     path=str(request.url.path),
                     method=request.method,
                     error=str(e),
                     duration_ms=duration_ms,
                     exc_info=True)
        raise
    finally:
        duration_ms = int((time.time() - start) * 1000)
        status_code = getattr(resp, "status_code", 0) if resp else 0
        logger.info("request_completed",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    status=status_code,
                    duration_ms=duration_ms)


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = _request_id(request)

    logger.error("unhandled_exception",
                 request_id=request_id,
                 path=str(request.url.path),
                 method=request.method,
                 error=str(exc),
                 error_type=type(exc).__name__,
                 exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": request_id,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        }
    )


@app.get("/v1/health")
async def health():
    return {"status": "ok"}


@app.get("/v1/debug/status")
async def debug_status():
    """Report which recommendation path is active and the effective defaults."""
    return {
        "status": "ok",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "ai": {
            "enabled": settings.ai_enabled,
            "provider": settings.ai_provider,
            "model": settings.openai_model,
            "configured": bool(settings.openai_api_key),
            "quota": {
                "enabled": settings.ai_rate_limiting,
                "requests_per_minute": settings.ai_requests_per_minute,
                "requests_per_day": settings.ai_requests_per_day,
                "tracked_shops": get_ai_quota().tracked_shops,
            },
        },
        "recommendations": {
            "number_of_suggestions": settings.number_of_suggestions,
            "minimum_match_score": settings.minimum_match_score,
            "max_products_to_scan": settings.max_products_to_scan,
            "only_in_stock": settings.only_in_stock,
        },
        "rate_limiting": {
            "requests_per_min": settings.rate_limit_per_min,
            "burst_capacity": settings.rate_limit_burst,
            "active_buckets": len(_buckets),
        },
    }


# Routers under versioned prefix
app.include_router(body_shape_router, prefix="/v1")
app.include_router(recommend_router, prefix="/v1")
app.include_router(analysis_router, prefix="/v1")

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
