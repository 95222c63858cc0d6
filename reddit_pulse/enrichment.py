from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .config import Settings, get_settings
from .crawlers.base import RawPost
from .errors import ConfigError, EnrichmentDegraded
from .llm_client import LLMClient
from .models import EnrichedAnalysis, EnrichedPost
from .normalization import (
    ANALYSIS_FIELDS,
    SENTIMENTS,
    NoPayload,
    ParsedOrRaw,
    extract_candidates,
    fallback_analysis,
    normalize_analysis,
    read_payload,
)

logger = structlog.get_logger()

ANALYSIS_TOOL_NAME = "store_analysis"
EMPTY_CONTENT_PLACEHOLDER = "no content available"
SCORING_RULE = (
    "sentiment_score is an INTEGER from 1..10 "
    "(10 most positive, 5 neutral or default for empty content, 1 most negative)"
)
MIN_MAX_TOKENS = 2000
MAX_MAX_TOKENS = 8000


def _item_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "summary": {"type": "string", "minLength": 1},
            "sentiment": {"type": "string", "enum": list(SENTIMENTS)},
            "sentiment_score": {"type": "integer", "minimum": 1, "maximum": 10},
            "key_insights": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": 2,
                "maxItems": 3,
            },
        },
        "required": list(ANALYSIS_FIELDS),
    }


def build_analysis_schema(count: int) -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "items": {
                "type": "array",
                "minItems": count,
                "maxItems": count,
                "items": _item_schema(),
            }
        },
        "required": ["items"],
    }


def build_analysis_tool(count: int) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": ANALYSIS_TOOL_NAME,
                "description": (
                    "Return structured JSON analysis for each input post IN ORDER. "
                    "Include summary, sentiment, sentiment_score, key_insights for every item."
                ),
                "parameters": build_analysis_schema(count),
            },
        }
    ]


def build_messages(posts: Sequence[RawPost], output_mode: str = "tool") -> List[Dict[str, str]]:
    count = len(posts)
    system = (
        "You are a strict JSON analyst. Output structured JSON only; no prose, no markdown. "
        f"Return exactly {count} item(s), one per input post, in the same order as the input. "
        "For posts with empty content, base your analysis on the title and set sentiment to \"neutral\" "
        "and sentiment_score to 5 unless the title clearly implies another tone."
    )
    if output_mode == "json_object":
        system += (
            " Respond with a single json object matching this JSON schema: "
            + json.dumps(build_analysis_schema(count))
        )
    else:
        system += f" Use the {ANALYSIS_TOOL_NAME} tool ONLY."

    user = {
        "instruction": "json batch enrichment",
        "requirements": {
            "fields_required": list(ANALYSIS_FIELDS),
            "scoring_rule": SCORING_RULE,
        },
        "posts": [
            {"title": p.title or "", "content": p.content if p.content.strip() else EMPTY_CONTENT_PLACEHOLDER}
            for p in posts
        ],
    }
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": json.dumps(user, ensure_ascii=False)},
    ]


def max_tokens_for(count: int, settings: Settings) -> int:
    budget = settings.enrich_tokens_per_item * count + 400
    return max(MIN_MAX_TOKENS, min(MAX_MAX_TOKENS, budget))


def request_analyses(llm: LLMClient, posts: Sequence[RawPost], settings: Settings) -> ParsedOrRaw:
    """One completion round-trip. Provider failures come back as ``NoPayload``."""
    output_mode = settings.enrich_output_mode
    kwargs: Dict[str, Any] = {}
    if output_mode == "json_object":
        kwargs["response_format"] = {"type": "json_object"}
    else:
        kwargs["tools"] = build_analysis_tool(len(posts))
        kwargs["tool_choice"] = {"type": "function", "function": {"name": ANALYSIS_TOOL_NAME}}

    try:
        response = llm.chat(
            build_messages(posts, output_mode),
            max_tokens=max_tokens_for(len(posts), settings),
            temperature=0,
            **kwargs,
        )
    except EnrichmentDegraded as exc:
        logger.warning("enrich_provider_degraded", count=len(posts), error=str(exc))
        return NoPayload(str(exc))
    except Exception as exc:
        logger.warning("enrich_provider_error", count=len(posts), error_type=type(exc).__name__, error=str(exc))
        return NoPayload(f"{type(exc).__name__}: {exc}")
    return read_payload(response)


def analyse_batch(llm: LLMClient, posts: Sequence[RawPost], settings: Settings) -> List[EnrichedAnalysis]:
    payload = request_analyses(llm, posts, settings)
    candidates = extract_candidates(payload)
    if len(candidates) != len(posts):
        logger.warning(
            "enrich_candidates_mismatch",
            expected=len(posts),
            received=len(candidates),
            payload_kind=type(payload).__name__,
        )
    return [
        normalize_analysis(candidates[i] if i < len(candidates) else None, post.title)
        for i, post in enumerate(posts)
    ]


def analyse_parallel(llm: LLMClient, posts: Sequence[RawPost], settings: Settings) -> List[EnrichedAnalysis]:
    results: List[Optional[EnrichedAnalysis]] = [None] * len(posts)
    with ThreadPoolExecutor(max_workers=min(settings.enrich_max_workers, len(posts))) as ex:
        futs = {ex.submit(analyse_batch, llm, [post], settings): idx for idx, post in enumerate(posts)}
        for fut in as_completed(futs):
            idx = futs[fut]
            try:
                results[idx] = fut.result()[0]
            except Exception as exc:
                logger.warning("enrich_item_failed", index=idx, error=str(exc))
                results[idx] = fallback_analysis(posts[idx].title)
    return [r if r is not None else fallback_analysis(posts[i].title) for i, r in enumerate(results)]


def choose_strategy(count: int, settings: Settings) -> str:
    if settings.enrich_strategy in {"batch", "parallel"}:
        return settings.enrich_strategy
    return "batch" if count <= settings.enrich_batch_max_items else "parallel"


def enrich_posts(
    posts: Sequence[RawPost],
    enrich: bool,
    llm: Optional[LLMClient] = None,
    settings: Optional[Settings] = None,
) -> List[EnrichedPost]:
    if not enrich:
        return [EnrichedPost.from_raw(p) for p in posts]
    if not posts:
        return []

    settings = settings or get_settings()
    if llm is None:
        if not settings.deepseek_api_key:
            raise ConfigError("Missing DEEPSEEK_API_KEY env var")
        llm = LLMClient(settings)

    strategy = choose_strategy(len(posts), settings)
    if strategy == "parallel":
        analyses = analyse_parallel(llm, posts, settings)
    else:
        analyses = analyse_batch(llm, posts, settings)
    logger.info("enrich_done", count=len(posts), strategy=strategy)
    return [EnrichedPost.from_raw(post, analysis) for post, analysis in zip(posts, analyses)]
