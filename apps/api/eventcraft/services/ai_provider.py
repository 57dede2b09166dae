"""AI Provider abstraction layer.

Supports OpenAI and Azure OpenAI chat completions with a unified interface.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

import httpx

from eventcraft.core.config import settings
from eventcraft.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Response from an AI provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str

    @property
    def estimated_cost_usd(self) -> Decimal:
        """Estimate cost based on model pricing (approximate)."""
        # Pricing per 1M tokens
        pricing = {
            "gpt-4o-mini": {"input": Decimal("0.15"), "output": Decimal("0.60")},
            "gpt-4o": {"input": Decimal("2.50"), "output": Decimal("10.00")},
            "gpt-4": {"input": Decimal("30.00"), "output": Decimal("60.00")},
        }

        model_pricing = pricing.get(
            self.model, {"input": Decimal("0"), "output": Decimal("0")}
        )
        input_cost = (Decimal(self.prompt_tokens) / Decimal("1000000")) * model_pricing[
            "input"
        ]
        output_cost = (
            Decimal(self.completion_tokens) / Decimal("1000000")
        ) * model_pricing["output"]
        return input_cost + output_cost


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        """Send a chat completion request.

        Raises httpx errors on transport failure, timeout or non-2xx status.
        """
        pass


def _parse_completion(data: dict, model: str) -> ChatResponse:
    usage = data.get("usage") or {}
    choices = data.get("choices") or [{}]
    message = choices[0].get("message") or {}
    return ChatResponse(
        content=message.get("content") or "",
        prompt_tokens=usage.get("prompt_tokens", 0),
        completion_tokens=usage.get("completion_tokens", 0),
        total_tokens=usage.get("total_tokens", 0),
        model=model,
    )


class OpenAIProvider(AIProvider):
    """OpenAI API provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = "https://api.openai.com/v1"

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": model,
                    "messages": [
                        {"role": m.role, "content": m.content} for m in messages
                    ],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()

        return _parse_completion(data, model)


class AzureOpenAIProvider(AIProvider):
    """Azure OpenAI deployment; ``model`` is the deployment name."""

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        default_model: str = "gpt-4o-mini",
        api_version: str = "2025-01-01-preview",
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.default_model = default_model
        self.api_version = api_version
        self.timeout = timeout

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.endpoint}/openai/deployments/{model}/chat/completions",
                params={"api-version": self.api_version},
                headers={
                    "api-key": self.api_key,
                    "Content-Type": "application/json",
                },
                json={
                    "messages": [
                        {"role": m.role, "content": m.content} for m in messages
                    ],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()

        return _parse_completion(data, model)


def get_provider(
    provider_name: str,
    api_key: str,
    model: str | None = None,
    *,
    endpoint: str | None = None,
    timeout: float = 60.0,
) -> AIProvider:
    """Factory function to get the appropriate AI provider."""
    if provider_name == "openai":
        return OpenAIProvider(
            api_key, default_model=model or "gpt-4o-mini", timeout=timeout
        )
    elif provider_name == "azure_openai":
        if not endpoint:
            raise ValueError("Azure OpenAI requires an endpoint")
        return AzureOpenAIProvider(
            api_key,
            endpoint,
            default_model=model or "gpt-4o-mini",
            api_version=settings.AZURE_OPENAI_API_VERSION,
            timeout=timeout,
        )
    else:
        raise ValueError(f"Unknown provider: {provider_name}")


def get_configured_provider() -> AIProvider:
    """
    Build the provider selected by AI_PROVIDER.

    Raises:
        ServiceUnavailableError: The selected provider has no credentials
    """
    if settings.AI_PROVIDER == "azure_openai":
        if not (settings.AZURE_OPENAI_API_KEY and settings.AZURE_OPENAI_ENDPOINT):
            raise ServiceUnavailableError("Text generation is not configured")
        api_key = settings.AZURE_OPENAI_API_KEY
    else:
        if not settings.OPENAI_API_KEY:
            raise ServiceUnavailableError("Text generation is not configured")
        api_key = settings.OPENAI_API_KEY

    try:
        return get_provider(
            settings.AI_PROVIDER,
            api_key,
            settings.AI_MODEL,
            endpoint=settings.AZURE_OPENAI_ENDPOINT or None,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    except ValueError as e:
        logger.error(f"Invalid AI provider configuration: {e}")
        raise ServiceUnavailableError("Text generation is not configured")
