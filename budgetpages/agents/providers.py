"""
AI Provider Adapters

One adapter per provider, all behind the same two calls:

    submit(api_key, system_prompt, user_prompt) -> raw reply text
    parse(text) -> AIResponse

DESIGN DECISION: Adapters are stateless. The (decrypted) key is passed
per call and an SDK client is opened and closed per call, because every
request may belong to a different user. Nothing is retried; a failed call surfaces
as ProviderError and the caller falls back to a rule-based summary.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import anthropic
import google.generativeai as genai
import httpx
import openai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError as PydanticValidationError

from budgetpages.agents.errors import MalformedResponseError, ProviderError
from budgetpages.config import AIModelSettings, get_settings
from budgetpages.models import AIProvider, AIResponse


def extract_json(text: str, provider: Optional[str] = None) -> dict:
    """
    Decode the first balanced ``{...}`` object in ``text``.

    Models like to wrap JSON in prose or code fences. Braces inside
    string literals are ignored. If a balanced span does not decode, the
    next ``{`` is tried.
    """
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            break
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)

    raise MalformedResponseError(
        f"No JSON object in response from {provider or 'provider'}",
        provider=provider,
    )


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


class ProviderAdapter(ABC):
    """Common shape of every provider backend."""

    provider: AIProvider

    def __init__(self, settings: Optional[AIModelSettings] = None):
        self._settings = settings or get_settings().ai

    @abstractmethod
    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        """Send the prompts and return the raw reply text."""

    def parse(self, text: str) -> AIResponse:
        data = extract_json(text, self.provider.value)
        try:
            return AIResponse.model_validate(data)
        except (PydanticValidationError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"Unexpected response shape from {self.provider.value}",
                provider=self.provider.value,
            ) from e

    def _empty_reply(self) -> ProviderError:
        return ProviderError(
            f"No response from {self.provider.value}",
            provider=self.provider.value,
        )


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions in JSON mode."""

    provider = AIProvider.OPENAI

    def __init__(
        self,
        settings: Optional[AIModelSettings] = None,
        client_factory: Callable[..., Any] = openai.AsyncOpenAI,
    ):
        super().__init__(settings)
        self._client_factory = client_factory

    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        try:
            async with self._client_factory(api_key=api_key) as client:
                response = await client.chat.completions.create(
                    model=self._settings.openai_model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                )
        except openai.RateLimitError as e:
            raise ProviderError(
                f"OpenAI rate limit reached: {e}",
                provider=self.provider.value,
                rate_limited=True,
                status_code=429,
            ) from e
        except openai.OpenAIError as e:
            raise ProviderError(
                f"OpenAI request failed: {e}",
                provider=self.provider.value,
                status_code=getattr(e, "status_code", None),
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise self._empty_reply()
        return content


class GoogleAdapter(ProviderAdapter):
    """
    Google Gemini via google-generativeai.

    The SDK keeps the API key in module-global configuration, so the
    configure-then-call pair is serialized to keep concurrent users'
    keys from crossing.
    """

    provider = AIProvider.GOOGLE
    _configure_lock = asyncio.Lock()

    def __init__(
        self,
        settings: Optional[AIModelSettings] = None,
        sdk: Any = genai,
    ):
        super().__init__(settings)
        self._sdk = sdk

    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        async with self._configure_lock:
            self._sdk.configure(api_key=api_key)
            model = self._sdk.GenerativeModel(
                model_name=self._settings.google_model,
                generation_config={
                    "max_output_tokens": self._settings.max_tokens,
                },
            )
            try:
                result = await model.generate_content_async(
                    f"{system_prompt}\n\n{user_prompt}"
                )
                text = result.text
            except google_exceptions.ResourceExhausted as e:
                raise ProviderError(
                    f"Google AI rate limit reached: {e}",
                    provider=self.provider.value,
                    rate_limited=True,
                    status_code=429,
                ) from e
            except google_exceptions.GoogleAPIError as e:
                raise ProviderError(
                    f"Google AI request failed: {e}",
                    provider=self.provider.value,
                ) from e
            except ValueError as e:
                # .text raises when the candidate was blocked or empty
                raise ProviderError(
                    f"Google AI returned no text: {e}",
                    provider=self.provider.value,
                ) from e

        if not text:
            raise self._empty_reply()
        return text


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages API."""

    provider = AIProvider.ANTHROPIC

    def __init__(
        self,
        settings: Optional[AIModelSettings] = None,
        client_factory: Callable[..., Any] = anthropic.AsyncAnthropic,
    ):
        super().__init__(settings)
        self._client_factory = client_factory

    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        try:
            async with self._client_factory(api_key=api_key) as client:
                response = await client.messages.create(
                    model=self._settings.anthropic_model,
                    max_tokens=self._settings.max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                )
        except anthropic.RateLimitError as e:
            raise ProviderError(
                f"Anthropic rate limit reached: {e}",
                provider=self.provider.value,
                rate_limited=True,
                status_code=429,
            ) from e
        except anthropic.AnthropicError as e:
            raise ProviderError(
                f"Anthropic request failed: {e}",
                provider=self.provider.value,
                status_code=getattr(e, "status_code", None),
            ) from e

        if not response.content or response.content[0].type != "text":
            raise ProviderError(
                "No text response from anthropic",
                provider=self.provider.value,
            )
        return response.content[0].text


class HTTPProviderAdapter(ProviderAdapter):
    """Providers reached with a plain JSON POST and a bearer key."""

    def __init__(
        self,
        settings: Optional[AIModelSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(settings)
        self._transport = transport

    async def _post(self, url: str, api_key: str, payload: dict) -> Any:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(
            timeout=self._settings.request_timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                raise ProviderError(
                    f"{self.provider.value} request failed: {e}",
                    provider=self.provider.value,
                ) from e

        if response.status_code == 429:
            raise ProviderError(
                f"{self.provider.value} rate limit reached",
                provider=self.provider.value,
                rate_limited=True,
                status_code=429,
            )
        if response.status_code >= 400:
            raise ProviderError(
                f"{self.provider.value} returned HTTP {response.status_code}: "
                f"{response.text[:200]}",
                provider=self.provider.value,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.provider.value} returned a non-JSON body",
                provider=self.provider.value,
                status_code=response.status_code,
            ) from e


class OpenRouterAdapter(HTTPProviderAdapter):
    """OpenRouter's OpenAI-compatible chat endpoint."""

    provider = AIProvider.OPENROUTER

    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        url = self._settings.openrouter_base_url.rstrip("/") + "/chat/completions"
        data = await self._post(url, api_key, {
            "model": self._settings.openrouter_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        })
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise self._empty_reply()
        return content


class HuggingFaceAdapter(HTTPProviderAdapter):
    """
    HuggingFace inference API (text generation).

    Small instruct models often ignore the JSON instruction, so a reply
    without JSON degrades to a summary built from the raw text instead
    of failing.
    """

    provider = AIProvider.HUGGINGFACE

    RAW_SUMMARY_LIMIT = 500

    async def submit(self, api_key: str, system_prompt: str, user_prompt: str) -> str:
        url = self._settings.huggingface_base_url.rstrip("/") + "/" + self._settings.huggingface_model
        data = await self._post(url, api_key, {
            "inputs": f"{system_prompt}\n\nUser: {user_prompt}\n\nAssistant:",
            "parameters": {
                "max_new_tokens": self._settings.max_tokens,
                "return_full_text": False,
            },
        })
        if isinstance(data, list):
            first = data[0] if data else {}
            content = first.get("generated_text") if isinstance(first, dict) else None
        elif isinstance(data, dict):
            content = data.get("generated_text")
        else:
            content = None
        if not content:
            raise self._empty_reply()
        return content

    def parse(self, text: str) -> AIResponse:
        try:
            return super().parse(text)
        except MalformedResponseError:
            return AIResponse(
                summary=text[:self.RAW_SUMMARY_LIMIT],
                insights=["Unable to parse structured insights"],
                recommendations=["Unable to parse structured recommendations"],
            )


ADAPTER_CLASSES: dict[AIProvider, type[ProviderAdapter]] = {
    AIProvider.OPENAI: OpenAIAdapter,
    AIProvider.GOOGLE: GoogleAdapter,
    AIProvider.ANTHROPIC: AnthropicAdapter,
    AIProvider.OPENROUTER: OpenRouterAdapter,
    AIProvider.HUGGINGFACE: HuggingFaceAdapter,
}


def default_adapters(
    settings: Optional[AIModelSettings] = None,
) -> dict[AIProvider, ProviderAdapter]:
    settings = settings or get_settings().ai
    return {provider: cls(settings) for provider, cls in ADAPTER_CLASSES.items()}
