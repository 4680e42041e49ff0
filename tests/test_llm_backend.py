"""
Tests for the LLM backends (httpx.MockTransport, no network)

Author: articheck maintainers | 2026-10-19
"""

import json

import httpx
import pytest

from articheck.checker import SectionVerifier
from articheck.config import LLMConfig
from articheck.llm_backend import (
    BackendError,
    OllamaBackend,
    OpenRouterBackend,
    get_backend,
)
from articheck.pipeline import verify_document


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def chat_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3},
    })


class TestOpenRouterBackend:
    """Tests for the hosted chat-completions backend."""

    def test_request_shape(self):
        """Test URL, headers and payload of a call."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return chat_response("verified")

        backend = OpenRouterBackend(api_key="sk-test", client=mock_client(handler))
        text = backend.call("system", "user", temperature=0.3, max_tokens=100)

        assert text == "verified"
        assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert seen["headers"]["authorization"] == "Bearer sk-test"
        assert seen["headers"]["x-title"] == "SEO Article Fact-Checker"
        assert seen["body"]["model"] == "openai/gpt-4o-search-preview"
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert seen["body"]["max_tokens"] == 100
        assert backend.last_usage["prompt_tokens"] == 12

    def test_usage_summed_across_calls(self):
        """Test that token usage accumulates over calls."""
        backend = OpenRouterBackend(api_key="k", client=mock_client(lambda r: chat_response("x")))

        backend.call("s", "u")
        backend.call("s", "u")

        assert backend.total_usage == {"prompt_tokens": 24, "completion_tokens": 6}
        info = backend.run_info()
        assert info["endpoint"] == "https://openrouter.ai/api/v1"
        assert info["local_only"] is False
        assert info["usage"] == backend.total_usage

    def test_key_from_env(self, monkeypatch):
        """Test that OPENROUTER_API_KEY is used when no key is given."""
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            return chat_response("x")

        OpenRouterBackend(client=mock_client(handler)).call("s", "u")
        assert seen["auth"] == "Bearer sk-env"

    def test_missing_key(self):
        """Test that a call without any API key fails before sending."""
        backend = OpenRouterBackend(client=mock_client(lambda r: chat_response("x")))
        with pytest.raises(BackendError):
            backend.call("s", "u")

    def test_http_error(self):
        """Test that an error status becomes a BackendError."""
        backend = OpenRouterBackend(
            api_key="k", client=mock_client(lambda r: httpx.Response(429, text="rate limited"))
        )
        with pytest.raises(BackendError, match="429"):
            backend.call("s", "u")

    def test_non_json(self):
        """Test that an unparseable body becomes a BackendError."""
        backend = OpenRouterBackend(
            api_key="k", client=mock_client(lambda r: httpx.Response(200, text="<html>"))
        )
        with pytest.raises(BackendError):
            backend.call("s", "u")

    def test_no_choices(self):
        """Test that an empty choice list yields empty text."""
        backend = OpenRouterBackend(
            api_key="k", client=mock_client(lambda r: httpx.Response(200, json={"choices": []}))
        )
        assert backend.call("s", "u") == ""


class TestOllamaBackend:
    """Tests for the local Ollama backend."""

    def test_chat_call(self):
        """Test the /api/chat request and usage mapping."""
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "message": {"role": "assistant", "content": "local answer"},
                "prompt_eval_count": 40,
                "eval_count": 8,
            })

        backend = OllamaBackend(model="mistral:instruct", client=mock_client(handler))
        text = backend.call("s", "u", temperature=0.1)

        assert text == "local answer"
        assert seen["path"] == "/api/chat"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"]["temperature"] == 0.1
        assert backend.last_usage == {"prompt_tokens": 40, "completion_tokens": 8}
        assert backend.is_local is True


class TestGetBackend:
    """Tests for the backend factory."""

    def test_default_is_openrouter(self):
        """Test the default backend."""
        backend = get_backend()
        assert isinstance(backend, OpenRouterBackend)
        assert backend.model_name == "openai/gpt-4o-search-preview"

    def test_ollama(self):
        """Test selecting the local backend."""
        backend = get_backend(LLMConfig(backend="ollama", model="llama3", endpoint="http://h:1"))
        assert isinstance(backend, OllamaBackend)
        assert backend.endpoint_info()["endpoint"] == "http://h:1"

    def test_unknown(self):
        """Test that an unknown backend name is rejected."""
        with pytest.raises(ValueError):
            get_backend(LLMConfig(backend="nope"))


class TestBackendInPipeline:
    """Tests for a pipeline run over a mocked HTTP service."""

    def test_failed_requests_fall_back(self, make_doc):
        """Test that HTTP failures on some sections keep their original text."""
        counter = {"n": 0}

        def handler(request):
            body = json.loads(request.content)
            user = body["messages"][1]["content"]
            counter["n"] += 1
            if "## Heading 1" in user:
                return httpx.Response(500, text="upstream error")
            return chat_response("Checked.")

        backend = OpenRouterBackend(api_key="k", client=mock_client(handler))
        run = verify_document(make_doc(4, 250), SectionVerifier(backend))

        assert counter["n"] == 4
        assert [f.section_id for f in run.failures] == [run.sections[1].section_id]
        assert isinstance(run.failures[0].error, BackendError)
        assert run.inline.count("Checked.") == 3
        assert run.backend["model"] == "openai/gpt-4o-search-preview"
        assert run.backend["local_only"] is False
        assert run.backend["usage"] == {"prompt_tokens": 36, "completion_tokens": 9}
