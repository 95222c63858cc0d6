from typing import Any, Dict, List, Optional

import requests
import structlog

from .config import Settings, get_settings
from .errors import ConfigError, EnrichmentDegraded

logger = structlog.get_logger()


class LLMClient:
    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.base_url = settings.deepseek_base_url.rstrip("/")
        self.api_key = settings.deepseek_api_key
        self.model = settings.deepseek_model
        self.timeout = settings.llm_http_timeout

    def _post(self, payload: Dict) -> Dict:
        if not self.api_key:
            raise ConfigError("Missing DEEPSEEK_API_KEY env var")
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        url = f"{self.base_url}/v1/chat/completions"
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.HTTPError as exc:
            body = exc.response.text[:500] if exc.response is not None else ""
            logger.warning("llm_request_rejected", error=str(exc), body=body)
            raise EnrichmentDegraded(f"completion request rejected: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("llm_request_failed", error=str(exc))
            raise EnrichmentDegraded(f"completion request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("llm_response_not_json", error=str(exc))
            raise EnrichmentDegraded("completion response was not JSON") from exc
        if not isinstance(data, dict):
            raise EnrichmentDegraded("completion response was not a JSON object")
        return data

    def chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None,
        response_format: Optional[Dict[str, str]] = None,
        temperature: float = 0,
    ) -> Dict:
        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice
        if response_format:
            payload["response_format"] = response_format
        return self._post(payload)
