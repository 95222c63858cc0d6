from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .crawlers.base import RawPost

Sentiment = Literal["positive", "neutral", "negative"]


class EnrichedAnalysis(BaseModel):
    summary: str = Field(min_length=1)
    sentiment: Sentiment
    sentiment_score: int = Field(ge=1, le=10)
    key_insights: List[str] = Field(min_length=2, max_length=3)


class EnrichedPost(BaseModel):
    title: str
    content: str
    source_url: str
    enriched: Optional[EnrichedAnalysis] = None

    @classmethod
    def from_raw(cls, post: RawPost, enriched: Optional[EnrichedAnalysis] = None) -> "EnrichedPost":
        return cls(title=post.title, content=post.content, source_url=post.source_url, enriched=enriched)


class PostsResponse(BaseModel):
    posts: List[EnrichedPost]


class ErrorResponse(BaseModel):
    error: str
    hint: Optional[str] = None
