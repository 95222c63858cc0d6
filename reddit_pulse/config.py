import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load env from project root or reddit_pulse/.env
root_env = Path(__file__).resolve().parents[1] / ".env"
package_env = Path(__file__).resolve().parent / ".env"
load_dotenv(root_env)
load_dotenv(package_env)


@dataclass
class Settings:
    reddit_id: str
    reddit_secret: str
    reddit_user_agent: str
    reddit_http_timeout: float
    reddit_max_limit: int
    deepseek_api_key: str
    deepseek_base_url: str
    deepseek_model: str
    llm_http_timeout: float
    enrich_strategy: str
    enrich_output_mode: str
    enrich_batch_max_items: int
    enrich_max_workers: int
    enrich_tokens_per_item: int
    default_subreddit: str
    default_query: str
    default_limit: int
    cors_allow_origins: List[str]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def get_settings() -> Settings:
    return Settings(
        reddit_id=os.getenv("REDDIT_ID", "").strip(),
        reddit_secret=os.getenv("REDDIT_SECRET", "").strip(),
        reddit_user_agent=os.getenv("REDDIT_USER_AGENT", "reddit-pulse/0.1"),
        reddit_http_timeout=_float_env("REDDIT_HTTP_TIMEOUT", 30.0),
        reddit_max_limit=max(1, _int_env("REDDIT_MAX_LIMIT", 100)),
        deepseek_api_key=os.getenv("DEEPSEEK_API_KEY", "").strip(),
        deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com"),
        deepseek_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
        llm_http_timeout=_float_env("LLM_HTTP_TIMEOUT", 60.0),
        enrich_strategy=os.getenv("ENRICH_STRATEGY", "auto").strip().lower(),
        enrich_output_mode=os.getenv("ENRICH_OUTPUT_MODE", "tool").strip().lower(),
        enrich_batch_max_items=max(1, _int_env("ENRICH_BATCH_MAX_ITEMS", 10)),
        enrich_max_workers=max(1, min(8, _int_env("ENRICH_MAX_WORKERS", 4))),
        enrich_tokens_per_item=max(50, _int_env("ENRICH_TOKENS_PER_ITEM", 250)),
        default_subreddit=os.getenv("DEFAULT_SUBREDDIT", "python"),
        default_query=os.getenv("DEFAULT_QUERY", "API"),
        default_limit=max(1, _int_env("DEFAULT_LIMIT", 5)),
        cors_allow_origins=[
            x.strip()
            for x in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
            if x.strip()
        ],
    )
