"""Turn whatever the completion provider returned into valid analyses.

Every provider outcome is first described as a ``ParsedOrRaw`` value:

* ``ToolArguments``: arguments of the forced ``store_analysis`` function call
* ``FreeformText``: plain message content (JSON-object mode or drifting free text)
* ``NoPayload``: the call failed or the message was empty

``extract_candidates`` reduces any of them to a (possibly empty) list of raw
items, and ``normalize_analysis`` is the only function that builds an
``EnrichedAnalysis``. Neither raises on bad upstream data.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .models import EnrichedAnalysis

SENTIMENTS = ("positive", "neutral", "negative")
SCORE_BY_SENTIMENT = {"positive": 8, "negative": 2, "neutral": 5}
FALLBACK_INSIGHTS = ("No additional insights", "Verify source context")
ANALYSIS_FIELDS = ("summary", "sentiment", "sentiment_score", "key_insights")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")


@dataclass(frozen=True)
class ToolArguments:
    value: Any


@dataclass(frozen=True)
class FreeformText:
    text: str


@dataclass(frozen=True)
class NoPayload:
    reason: str


ParsedOrRaw = Union[ToolArguments, FreeformText, NoPayload]


def _first_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def read_payload(response: Any) -> ParsedOrRaw:
    """Locate the model's answer inside an OpenAI-compatible chat response."""
    if not isinstance(response, dict):
        return NoPayload("response is not an object")
    message = _first_dict(response.get("choices")).get("message")
    if not isinstance(message, dict):
        return NoPayload("response has no message")

    function = _first_dict(message.get("tool_calls")).get("function")
    if isinstance(function, dict) and function.get("arguments"):
        return ToolArguments(function["arguments"])

    # legacy single function-call shape
    function_call = message.get("function_call")
    if isinstance(function_call, dict) and function_call.get("arguments"):
        return ToolArguments(function_call["arguments"])

    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return FreeformText(content)
    return NoPayload("message is empty")


def _bracketed_spans(text: str) -> List[str]:
    spans = []
    for pattern in (_OBJECT_RE, _ARRAY_RE):
        match = pattern.search(text)
        if match:
            spans.append((match.start(), match.group(0)))
    spans.sort(key=lambda x: x[0])
    return [span for _, span in spans]


def parse_json_payload(text: str) -> Optional[Any]:
    """Strict ``json.loads`` first, then a best-effort salvage. ``None`` on failure."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    for span in _bracketed_spans(text):
        try:
            return json.loads(_TRAILING_COMMA_RE.sub(r"\1", span))
        except ValueError:
            continue
    return None


def _candidate_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        items = value.get("items")
        if isinstance(items, list):
            return items
        if any(field in value for field in ANALYSIS_FIELDS):
            return [value]
    return []


def extract_candidates(payload: ParsedOrRaw) -> List[Any]:
    if isinstance(payload, NoPayload):
        return []
    value = payload.value if isinstance(payload, ToolArguments) else payload.text
    if isinstance(value, str):
        value = parse_json_payload(value)
    return _candidate_list(value)


def _resolve_sentiment(raw: Any) -> str:
    sentiment = raw.lower() if isinstance(raw, str) else ""
    return sentiment if sentiment in SENTIMENTS else "neutral"


def _resolve_score(raw: Any, sentiment: str) -> int:
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if isinstance(raw, int) and not isinstance(raw, bool):
        score = raw
    else:
        score = SCORE_BY_SENTIMENT[sentiment]
    return int(round(max(1, min(10, score))))


def _resolve_summary(raw: Any, fallback_title: str) -> str:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return f"Summary: {fallback_title}" if fallback_title else "Summary unavailable"


def _resolve_insights(raw: Any) -> List[str]:
    entries = raw if isinstance(raw, list) else []
    insights = [str(x).strip() for x in entries if x is not None and str(x).strip()][:3]
    if len(insights) < 2:
        return list(FALLBACK_INSIGHTS)
    return insights


def normalize_analysis(item: Any, fallback_title: str = "") -> EnrichedAnalysis:
    """Build a valid analysis from one candidate item, or from the title alone."""
    it = item if isinstance(item, dict) else {}
    sentiment = _resolve_sentiment(it.get("sentiment"))
    return EnrichedAnalysis(
        summary=_resolve_summary(it.get("summary"), fallback_title),
        sentiment=sentiment,
        sentiment_score=_resolve_score(it.get("sentiment_score"), sentiment),
        key_insights=_resolve_insights(it.get("key_insights")),
    )


def fallback_analysis(fallback_title: str) -> EnrichedAnalysis:
    return normalize_analysis(None, fallback_title)
