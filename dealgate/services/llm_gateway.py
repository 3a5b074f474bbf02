"""Text-generation gateway used by the model-backed classification stages.

Every provider exposes the same single capability: send a prompt, get text
back. Gemini goes through the google-genai SDK (async client); Groq and
Together share an OpenAI-compatible chat completions call over httpx; the
Hugging Face Inference API is called over httpx as well.

Configuration problems (unset or unsupported provider, missing API key) are
raised as ConfigurationError when the gateway is built, so the service
refuses to start instead of degrading on every request.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from google import genai
from google.genai import types
from pydantic import ValidationError

from dealgate.config import SUPPORTED_PROVIDERS, Settings, get_settings


logger = logging.getLogger(__name__)

DEFAULT_MODELS: Dict[str, str] = {
    "gemini": "gemini-2.0-flash",
    "groq": "llama-3.1-8b-instant",
    "together": "mistralai/Mixtral-8x7B-Instruct-v0.1",
    "huggingface": "mistralai/Mistral-7B-Instruct-v0.2",
}

CHAT_COMPLETIONS_URLS: Dict[str, str] = {
    "groq": "https://api.groq.com/openai/v1/chat/completions",
    "together": "https://api.together.xyz/v1/chat/completions",
}

HUGGINGFACE_URL = "https://api-inference.huggingface.co/models/{model}"

# Upper bound for the HTTP transport; stages apply their own shorter timeout
HTTP_TIMEOUT_SECONDS = 60.0

SYSTEM_PROMPT = "You are a precise document classifier. Follow the reply format exactly."


class ProviderError(Exception):
    """Raised when the text-generation provider cannot produce a reply.

    Attributes:
        provider: Provider name (gemini, groq, together, huggingface)
        status_code: HTTP status code, when the failure was an HTTP error
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ConfigurationError(ProviderError):
    """No provider configured, unsupported provider, or missing credentials."""


class TextGenerationGateway(Protocol):
    """Anything that can answer a prompt with free-form text."""

    provider: str
    model: str

    async def ask(self, prompt: str) -> str:
        ...


class GeminiGateway:
    """Gemini via the google-genai SDK."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = 256,
        client: Optional[genai.Client] = None,
    ):
        self.model = model or DEFAULT_MODELS["gemini"]
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = client or genai.Client(api_key=api_key)

    async def ask(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            raise ProviderError(
                f"Gemini API call failed: {e}",
                provider=self.provider,
                status_code=getattr(e, "code", None),
            ) from e

        text = response.text
        if not text or not text.strip():
            raise ProviderError("Gemini returned an empty response", provider=self.provider)
        return text


class ChatCompletionsGateway:
    """OpenAI-compatible chat completions endpoint (Groq, Together)."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 256,
        url: Optional[str] = None,
    ):
        self.provider = provider
        self.model = model or DEFAULT_MODELS[provider]
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.url = url or CHAT_COMPLETIONS_URLS[provider]
        self._api_key = api_key

    async def ask(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        data = await _post_json(self.provider, self.url, body, headers)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                f"{self.provider} returned a malformed response",
                provider=self.provider,
            ) from e

        if not content or not str(content).strip():
            raise ProviderError(f"{self.provider} returned an empty response", provider=self.provider)
        return str(content)


class HuggingFaceGateway:
    """Hugging Face Inference API. The API key is optional for public models."""

    provider = "huggingface"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_new_tokens: int = 256,
    ):
        self.model = model or DEFAULT_MODELS["huggingface"]
        self.max_new_tokens = max_new_tokens
        self.url = HUGGINGFACE_URL.format(model=self.model)
        self._api_key = api_key

    async def ask(self, prompt: str) -> str:
        body = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": self.max_new_tokens,
                "return_full_text": False,
            },
        }
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        data = await _post_json(self.provider, self.url, body, headers)

        # The API answers with either a list of generations or a single object
        if isinstance(data, list) and data:
            data = data[0]
        text = data.get("generated_text") if isinstance(data, dict) else None
        if not text or not str(text).strip():
            raise ProviderError("Hugging Face returned an empty response", provider=self.provider)
        return str(text)


async def _post_json(
    provider: str,
    url: str,
    body: Dict[str, Any],
    headers: Dict[str, str],
) -> Any:
    """POST a JSON body and return the decoded JSON reply."""
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=body, headers=headers)
    except httpx.HTTPError as e:
        raise ProviderError(f"{provider} request failed: {e}", provider=provider) from e

    if response.status_code >= 400:
        raise ProviderError(
            f"{provider} API error ({response.status_code}): {response.text[:200]}",
            provider=provider,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(f"{provider} returned invalid JSON", provider=provider) from e


async def ask_with_timeout(
    gateway: TextGenerationGateway,
    prompt: str,
    timeout_seconds: float,
) -> str:
    """Ask the gateway, cancelling the in-flight call after ``timeout_seconds``.

    Raises:
        ProviderError: On timeout or any provider failure.
    """
    try:
        return await asyncio.wait_for(gateway.ask(prompt), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        provider = getattr(gateway, "provider", None)
        raise ProviderError(
            f"{provider} did not answer within {timeout_seconds:g}s",
            provider=provider,
        ) from e


def build_gateway(settings: Settings) -> TextGenerationGateway:
    """Create the gateway for the configured provider.

    Args:
        settings: Validated application settings.

    Returns:
        A ready-to-use TextGenerationGateway.

    Raises:
        ConfigurationError: If the provider is unsupported or its API key is missing.
    """
    provider = settings.llm_provider
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(f"Unsupported provider: {provider}", provider=provider)

    if provider != "huggingface" and not settings.llm_api_key:
        raise ConfigurationError(
            f"LLM_API_KEY must be set for provider '{provider}'",
            provider=provider,
        )

    if provider == "gemini":
        gateway: TextGenerationGateway = GeminiGateway(
            api_key=settings.llm_api_key or "",
            model=settings.llm_model,
        )
    elif provider == "huggingface":
        gateway = HuggingFaceGateway(api_key=settings.llm_api_key, model=settings.llm_model)
    else:
        gateway = ChatCompletionsGateway(
            provider=provider,
            api_key=settings.llm_api_key or "",
            model=settings.llm_model,
        )

    logger.info(f"Text-generation gateway ready: provider={gateway.provider} model={gateway.model}")
    return gateway


def get_gateway() -> TextGenerationGateway:
    """Build the gateway from environment settings.

    Raises:
        ConfigurationError: If settings are invalid or the provider cannot be built.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid text-generation configuration: {e}") from e
    return build_gateway(settings)
