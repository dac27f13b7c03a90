"""
Tests for the AI provider adapters.

SDK clients are replaced with small fakes and the plain-HTTP providers
run against httpx.MockTransport, so nothing leaves the process.
"""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from budgetpages.agents import providers
from budgetpages.agents import (
    AnthropicAdapter,
    ErrorKind,
    GoogleAdapter,
    HuggingFaceAdapter,
    MalformedResponseError,
    OpenAIAdapter,
    OpenRouterAdapter,
    ProviderError,
    default_adapters,
    extract_json,
)
from budgetpages.config import AIModelSettings
from budgetpages.models import AIProvider


REPLY = {
    "summary": "Spending is steady.",
    "insights": ["Food leads"],
    "recommendations": ["Plan meals"],
}


@pytest.fixture
def ai_settings():
    return AIModelSettings()


class TestExtractJson:
    """Locating the JSON object inside a model reply."""

    def test_plain_object(self):
        assert extract_json(json.dumps(REPLY)) == REPLY

    def test_wrapped_in_prose_and_fences(self):
        text = "Sure! Here you go:\n```json\n" + json.dumps(REPLY) + "\n```\nHope that helps."
        assert extract_json(text) == REPLY

    def test_braces_inside_strings(self):
        text = 'Result: {"summary": "use {braces} wisely", "insights": [], "recommendations": []}'
        assert extract_json(text)["summary"] == "use {braces} wisely"

    def test_skips_a_broken_candidate(self):
        text = "{not json} then " + json.dumps(REPLY)
        assert extract_json(text) == REPLY

    def test_no_object_is_malformed(self):
        with pytest.raises(MalformedResponseError) as exc:
            extract_json("I cannot help with that.", "openai")
        assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE
        assert exc.value.provider == "openai"


class FakeClient:
    """Stands in for an SDK client used as an async context manager."""

    def __init__(self, **resources):
        self.__dict__.update(resources)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False


class FakeCompletions:

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestOpenAIAdapter:

    def _adapter(self, settings, completions, seen_keys, clients=None):
        def factory(api_key):
            seen_keys.append(api_key)
            client = FakeClient(chat=SimpleNamespace(completions=completions))
            if clients is not None:
                clients.append(client)
            return client
        return OpenAIAdapter(settings, client_factory=factory)

    @pytest.mark.asyncio
    async def test_submit_and_parse(self, ai_settings):
        completions = FakeCompletions(content=json.dumps(REPLY))
        keys = []
        adapter = self._adapter(ai_settings, completions, keys)

        text = await adapter.submit("sk-1", "system", "user prompt")
        response = adapter.parse(text)

        assert keys == ["sk-1"]
        assert completions.kwargs["model"] == ai_settings.openai_model
        assert completions.kwargs["response_format"] == {"type": "json_object"}
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert response.summary == "Spending is steady."

    @pytest.mark.asyncio
    async def test_rate_limit_is_typed(self, ai_settings):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.RateLimitError(
            "Rate limit reached",
            response=httpx.Response(429, request=request),
            body=None,
        )
        adapter = self._adapter(ai_settings, FakeCompletions(error=error), [])

        with pytest.raises(ProviderError) as exc:
            await adapter.submit("sk-1", "system", "prompt")
        assert exc.value.kind == ErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_empty_reply(self, ai_settings):
        adapter = self._adapter(ai_settings, FakeCompletions(content=None), [])
        with pytest.raises(ProviderError) as exc:
            await adapter.submit("sk-1", "system", "prompt")
        assert exc.value.kind == ErrorKind.PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_client_is_closed(self, ai_settings):
        clients = []
        ok = self._adapter(ai_settings, FakeCompletions(content="{}"), [], clients)
        failing = self._adapter(
            ai_settings, FakeCompletions(error=openai.OpenAIError("boom")), [], clients
        )

        await ok.submit("sk-1", "system", "prompt")
        with pytest.raises(ProviderError):
            await failing.submit("sk-1", "system", "prompt")

        assert [client.closed for client in clients] == [True, True]

    def test_reply_without_json_is_malformed(self, ai_settings):
        adapter = OpenAIAdapter(ai_settings)
        with pytest.raises(MalformedResponseError):
            adapter.parse("no structured data here")

    def test_scalar_lists_are_malformed(self, ai_settings):
        with pytest.raises(MalformedResponseError) as exc:
            OpenAIAdapter(ai_settings).parse(
                '{"summary": "ok", "insights": 5, "recommendations": true}'
            )
        assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE

    def test_shape_errors_are_malformed(self, ai_settings, monkeypatch):
        def reject(data):
            raise TypeError("'int' object is not iterable")

        monkeypatch.setattr(providers, "AIResponse", SimpleNamespace(model_validate=reject))
        with pytest.raises(MalformedResponseError) as exc:
            OpenAIAdapter(ai_settings).parse('{"summary": "ok", "insights": 5}')
        assert exc.value.provider == "openai"


class TestAnthropicAdapter:

    @pytest.mark.asyncio
    async def test_submit(self, ai_settings):
        calls = {}

        class Messages:
            async def create(self, **kwargs):
                calls.update(kwargs)
                return SimpleNamespace(content=[SimpleNamespace(type="text", text=json.dumps(REPLY))])

        adapter = AnthropicAdapter(
            ai_settings,
            client_factory=lambda api_key: FakeClient(messages=Messages()),
        )
        text = await adapter.submit("key", "system", "prompt")

        assert calls["system"] == "system"
        assert calls["max_tokens"] == ai_settings.max_tokens
        assert adapter.parse(text).insights == ["Food leads"]

    @pytest.mark.asyncio
    async def test_non_text_block(self, ai_settings):
        class Messages:
            async def create(self, **kwargs):
                return SimpleNamespace(content=[SimpleNamespace(type="tool_use")])

        adapter = AnthropicAdapter(
            ai_settings,
            client_factory=lambda api_key: FakeClient(messages=Messages()),
        )
        with pytest.raises(ProviderError):
            await adapter.submit("key", "system", "prompt")


class TestGoogleAdapter:

    @pytest.mark.asyncio
    async def test_configures_key_and_calls_model(self, ai_settings):
        configured = []
        prompts = []

        class Model:
            def __init__(self, model_name, generation_config):
                self.model_name = model_name

            async def generate_content_async(self, prompt):
                prompts.append(prompt)
                return SimpleNamespace(text=json.dumps(REPLY))

        sdk = SimpleNamespace(
            configure=lambda api_key: configured.append(api_key),
            GenerativeModel=Model,
        )
        adapter = GoogleAdapter(ai_settings, sdk=sdk)
        text = await adapter.submit("g-key", "system", "prompt")

        assert configured == ["g-key"]
        assert prompts == ["system\n\nprompt"]
        assert adapter.parse(text).summary == "Spending is steady."


class TestHTTPAdapters:
    """OpenRouter and HuggingFace over a mocked transport."""

    @pytest.mark.asyncio
    async def test_openrouter(self, ai_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": json.dumps(REPLY)}}],
            })

        adapter = OpenRouterAdapter(ai_settings, transport=httpx.MockTransport(handler))
        text = await adapter.submit("or-key", "system", "prompt")

        assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert seen["auth"] == "Bearer or-key"
        assert seen["body"]["model"] == ai_settings.openrouter_model
        assert adapter.parse(text).recommendations == ["Plan meals"]

    @pytest.mark.asyncio
    async def test_status_429_is_rate_limited(self, ai_settings):
        adapter = OpenRouterAdapter(
            ai_settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(429, json={})),
        )
        with pytest.raises(ProviderError) as exc:
            await adapter.submit("or-key", "system", "prompt")
        assert exc.value.kind == ErrorKind.RATE_LIMITED
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_server_error(self, ai_settings):
        adapter = OpenRouterAdapter(
            ai_settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down")),
        )
        with pytest.raises(ProviderError) as exc:
            await adapter.submit("or-key", "system", "prompt")
        assert exc.value.kind == ErrorKind.PROVIDER_ERROR
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_huggingface_list_reply(self, ai_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"generated_text": json.dumps(REPLY)}])

        adapter = HuggingFaceAdapter(ai_settings, transport=httpx.MockTransport(handler))
        text = await adapter.submit("hf-key", "system", "prompt")

        assert seen["url"].endswith("/" + ai_settings.huggingface_model)
        assert seen["body"]["inputs"] == "system\n\nUser: prompt\n\nAssistant:"
        assert adapter.parse(text).summary == "Spending is steady."

    def test_huggingface_degrades_without_json(self, ai_settings):
        adapter = HuggingFaceAdapter(ai_settings)
        raw = "Spending looks high this week" + "." * 600
        response = adapter.parse(raw)

        assert response.summary == raw[:500]
        assert response.insights == ["Unable to parse structured insights"]
        assert response.recommendations == ["Unable to parse structured recommendations"]


def test_default_adapters_cover_every_provider(ai_settings):
    adapters = default_adapters(ai_settings)
    assert set(adapters) == set(AIProvider)
    assert all(adapter.provider == provider for provider, adapter in adapters.items())
