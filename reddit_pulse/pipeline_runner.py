from __future__ import annotations

import time
from typing import List, Optional

import structlog

from .config import Settings, get_settings
from .crawlers.base import Crawler
from .crawlers.reddit import RedditSearchCrawler
from .enrichment import enrich_posts
from .llm_client import LLMClient
from .models import EnrichedPost

logger = structlog.get_logger()


def run_posts_pipeline(
    subreddit: str,
    query: str,
    limit: int,
    enrich: bool,
    crawler: Optional[Crawler] = None,
    llm: Optional[LLMClient] = None,
    settings: Optional[Settings] = None,
) -> List[EnrichedPost]:
    """Fetch then enrich. Fetch and config errors raise; enrichment failures end in fallback analyses."""
    settings = settings or get_settings()
    started = time.monotonic()
    log = logger.bind(subreddit=subreddit, query=query, limit=limit, enrich=enrich)
    try:
        posts = (crawler or RedditSearchCrawler(settings)).fetch(subreddit, query, limit)
        result = enrich_posts(posts, enrich, llm=llm, settings=settings)
    except Exception as exc:
        log.error("pipeline_failed", error_type=type(exc).__name__, error=str(exc))
        raise
    log.info("pipeline_done", count=len(result), elapsed_sec=round(time.monotonic() - started, 2))
    return result
