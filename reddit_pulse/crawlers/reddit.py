from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import structlog

from .base import Crawler, RawPost
from ..config import Settings, get_settings
from ..errors import AuthError, FetchError, MissingCredentialsError
from ..http_client import send_request

logger = structlog.get_logger()

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
SEARCH_URL = "https://oauth.reddit.com/r/{community}/search"
PERMALINK_BASE = "https://reddit.com"


def fetch_access_token(settings: Settings) -> str:
    if not settings.reddit_id or not settings.reddit_secret:
        raise MissingCredentialsError("Missing REDDIT_ID / REDDIT_SECRET env vars")

    resp = send_request(
        "POST",
        TOKEN_URL,
        headers={"User-Agent": settings.reddit_user_agent},
        data={"grant_type": "client_credentials"},
        auth=(settings.reddit_id, settings.reddit_secret),
        timeout=settings.reddit_http_timeout,
    )
    if not resp.ok:
        raise AuthError(f"Reddit token request failed ({resp.error})")

    try:
        token = resp.json().get("access_token")
    except (ValueError, AttributeError):
        token = None
    if not token:
        logger.error("reddit_token_missing", status_code=resp.status_code, body=resp.text[:300])
        raise AuthError("Reddit token response did not include an access token")
    return str(token)


def _to_raw_post(record: Dict[str, Any]) -> RawPost:
    return RawPost(
        title=str(record.get("title") or ""),
        content=str(record.get("selftext") or ""),
        source_url=f"{PERMALINK_BASE}{record.get('permalink') or ''}",
    )


def parse_listing(payload: Any) -> List[RawPost]:
    listing = payload.get("data") if isinstance(payload, dict) else None
    children = listing.get("children") if isinstance(listing, dict) else None
    if not isinstance(children, list):
        return []

    posts: List[RawPost] = []
    for child in children:
        record = child.get("data") if isinstance(child, dict) else None
        if not isinstance(record, dict):
            continue
        posts.append(_to_raw_post(record))
    return posts


class RedditSearchCrawler(Crawler):
    source_type = "reddit"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def fetch(self, community: str, query: str, limit: int) -> List[RawPost]:
        token = fetch_access_token(self.settings)
        headers = {
            "Authorization": f"bearer {token}",
            "User-Agent": self.settings.reddit_user_agent,
        }
        url = SEARCH_URL.format(community=quote(community, safe=""))
        resp = send_request(
            "GET",
            url,
            headers=headers,
            params={"q": query, "limit": limit, "restrict_sr": "true"},
            timeout=self.settings.reddit_http_timeout,
        )
        if not resp.ok:
            raise FetchError(f"Reddit search failed ({resp.error})")

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.error("reddit_search_invalid_json", community=community, error=str(exc))
            raise FetchError("Reddit search returned an unreadable response") from exc

        posts = parse_listing(payload)[:limit]
        logger.info("reddit_search_done", community=community, query=query, limit=limit, count=len(posts))
        return posts
