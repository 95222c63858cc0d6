from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import PulseError
from .models import ErrorResponse, PostsResponse
from .observability import configure_logging, init_sentry
from .pipeline_runner import run_posts_pipeline

configure_logging()
logger = structlog.get_logger()

ERROR_HINT = (
    "Check env vars (REDDIT_ID/REDDIT_SECRET/DEEPSEEK_API_KEY), network, "
    "and that the Reddit and DeepSeek APIs are reachable."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry()
    logger.info("api_startup")
    yield
    logger.info("api_shutdown")


app = FastAPI(title="Reddit Pulse API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, maximum)


def parse_enrich(raw: Optional[str]) -> bool:
    return raw != "false"


def _error_response(message: str) -> JSONResponse:
    body = ErrorResponse(error=message, hint=ERROR_HINT)
    return JSONResponse(status_code=500, content=body.model_dump())


@app.exception_handler(PulseError)
async def pulse_error_handler(request: Request, exc: PulseError):
    logger.warning("request_failed", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return _error_response(str(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception", path=request.url.path)
    return _error_response("Internal server error")


@app.get("/healthz")
def healthz() -> Dict[str, bool]:
    return {"ok": True}


@app.get("/", response_model=PostsResponse, responses={500: {"model": ErrorResponse}})
def list_posts(
    subreddit: Optional[str] = Query(default=None),
    query: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    enrich: Optional[str] = Query(default=None),
):
    settings = get_settings()
    posts = run_posts_pipeline(
        subreddit or settings.default_subreddit,
        query or settings.default_query,
        parse_limit(limit, settings.default_limit, settings.reddit_max_limit),
        parse_enrich(enrich),
        settings=settings,
    )
    return PostsResponse(posts=posts)
