"""
LLM backend abstraction for the verification model.

OpenRouterBackend calls a hosted chat-completions endpoint (default: a
search-enabled GPT model); OllamaBackend calls a local Ollama server.
Both use httpx and accept an injected httpx.Client for tests.

Author: articheck maintainers | 2026-10-19
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging
import os
import threading
import time

import httpx

from articheck.config import LLMConfig, OLLAMA_ENDPOINT, OPENROUTER_ENDPOINT

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when the model service answers with an error or an unusable payload."""
    pass


class LLMBackend(ABC):
    """Abstract base for verification model backends."""

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client
        self._last_usage: Dict[str, Any] = {}
        self._total_usage: Dict[str, int] = {}
        self._usage_lock = threading.Lock()

    @abstractmethod
    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        timeout: int = 120,
    ) -> str:
        """Send one system + user exchange and return the response text."""
        ...

    @property
    def last_usage(self) -> Dict[str, Any]:
        """Token usage reported by the last call, when the service provides it."""
        return self._last_usage

    @property
    def total_usage(self) -> Dict[str, int]:
        """Token usage summed over every call made through this backend."""
        with self._usage_lock:
            return dict(self._total_usage)

    def _record_usage(self, usage: Dict[str, Any]) -> None:
        # Backends are shared by dispatcher threads
        with self._usage_lock:
            self._last_usage = usage
            for key, value in usage.items():
                if isinstance(value, int):
                    self._total_usage[key] = self._total_usage.get(key, 0) + value

    @abstractmethod
    def endpoint_info(self) -> Dict[str, Any]:
        """Return endpoint metadata for run reports."""
        ...

    def run_info(self) -> Dict[str, Any]:
        """Endpoint metadata plus cumulative usage, as stored in run.json."""
        info = dict(self.endpoint_info())
        info["local_only"] = self.is_local
        info["usage"] = self.total_usage
        return info

    @property
    @abstractmethod
    def is_local(self) -> bool:
        """Whether this backend runs entirely locally."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """The model identifier."""
        ...

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: int) -> Dict[str, Any]:
        t0 = time.perf_counter()
        if self._client is not None:
            response = self._client.post(url, json=payload, headers=headers, timeout=timeout)
        else:
            response = httpx.post(url, json=payload, headers=headers, timeout=timeout)
        elapsed = int((time.perf_counter() - t0) * 1000)

        if response.status_code >= 400:
            raise BackendError(
                f"{type(self).__name__} API error: {response.status_code} - {response.text}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"{type(self).__name__}: response is not JSON") from e
        logger.debug(f"[llm] {self.model_name} answered in {elapsed} ms")
        return data


class OpenRouterBackend(LLMBackend):
    """
    Hosted chat-completions backend (OpenRouter-compatible).

    The API key comes from the constructor or OPENROUTER_API_KEY.
    """

    def __init__(
        self,
        model: str = "openai/gpt-4o-search-preview",
        endpoint: str = OPENROUTER_ENDPOINT,
        api_key: str = "",
        site_url: str = "http://localhost:3000",
        app_title: str = "SEO Article Fact-Checker",
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(client)
        self._model = model
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._site_url = site_url
        self._app_title = app_title

    def _headers(self) -> Dict[str, str]:
        key = self._api_key or os.environ.get("OPENROUTER_API_KEY", "")
        if not key:
            raise BackendError("No API key: set OPENROUTER_API_KEY or llm.api_key")
        return {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._site_url,
            "X-Title": self._app_title,
        }

    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        timeout: int = 120,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = self._post(f"{self._endpoint}/chat/completions", payload, self._headers(), timeout)
        self._record_usage(data.get("usage") or {})
        choices: List[Dict[str, Any]] = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    def endpoint_info(self) -> Dict[str, Any]:
        return {"local_only": False, "endpoint": self._endpoint, "model": self._model}

    @property
    def is_local(self) -> bool:
        return False

    @property
    def model_name(self) -> str:
        return self._model


class OllamaBackend(LLMBackend):
    """Local backend via the Ollama /api/chat endpoint."""

    def __init__(
        self,
        model: str = "mistral:instruct",
        endpoint: str = OLLAMA_ENDPOINT,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(client)
        self._model = model
        self._endpoint = endpoint.rstrip("/")

    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        timeout: int = 120,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        data = self._post(
            f"{self._endpoint}/api/chat", payload, {"Content-Type": "application/json"}, timeout
        )
        self._record_usage({
            "prompt_tokens": data.get("prompt_eval_count", 0),
            "completion_tokens": data.get("eval_count", 0),
        })
        return (data.get("message") or {}).get("content") or ""

    def endpoint_info(self) -> Dict[str, Any]:
        return {"local_only": True, "endpoint": self._endpoint, "model": self._model}

    @property
    def is_local(self) -> bool:
        return True

    @property
    def model_name(self) -> str:
        return self._model


def get_backend(config: Optional[LLMConfig] = None, client: Optional[httpx.Client] = None) -> LLMBackend:
    """
    Factory for LLM backends.

    Args:
        config: LLMConfig (defaults to OpenRouter with the fact-check model)
        client: Optional shared httpx.Client

    Raises:
        ValueError: If the backend name is unknown
    """
    cfg = config or LLMConfig()
    if cfg.backend == "openrouter":
        return OpenRouterBackend(
            model=cfg.model,
            endpoint=cfg.endpoint,
            api_key=cfg.api_key,
            site_url=cfg.site_url,
            app_title=cfg.app_title,
            client=client,
        )
    elif cfg.backend == "ollama":
        return OllamaBackend(model=cfg.model, endpoint=cfg.endpoint, client=client)
    else:
        raise ValueError(f"Unknown backend: {cfg.backend!r}. Use 'openrouter' or 'ollama'.")
