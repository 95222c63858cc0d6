from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests
import structlog

logger = structlog.get_logger()


@dataclass
class HttpResult:
    ok: bool
    status_code: int
    text: str
    url: str
    error: Optional[str] = None

    def json(self) -> Any:
        return json.loads(self.text)


def _trust_env_proxy() -> bool:
    # requests picks up system proxies by default; keep that opt-in
    return os.getenv("HTTP_TRUST_ENV_PROXY", "0") == "1"


def send_request(
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    auth: Optional[Tuple[str, str]] = None,
    *,
    timeout: float,
) -> HttpResult:
    """Single attempt, no retries. Transport errors come back as ``ok=False``."""
    session = requests.Session()
    session.trust_env = _trust_env_proxy()
    try:
        resp = session.request(
            method,
            url,
            headers=headers,
            params=params,
            data=data,
            auth=auth,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.warning("http_request_failed", method=method, url=url, error=str(exc))
        return HttpResult(ok=False, status_code=0, text="", url=url, error=str(exc))
    finally:
        session.close()

    status = int(resp.status_code)
    if 200 <= status < 300:
        return HttpResult(ok=True, status_code=status, text=resp.text, url=url)

    logger.warning("http_request_rejected", method=method, url=url, status_code=status, body=resp.text[:500])
    return HttpResult(ok=False, status_code=status, text=resp.text, url=url, error=f"HTTP {status}")
