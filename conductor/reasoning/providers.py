# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
LLM Reasoning Providers

Each provider turns (system_prompt, user_prompt, config) into the raw
completion text plus token usage. ProviderRouter picks the provider named
by the reasoning config.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from conductor.core.config import Config, get_config
from conductor.pipelines.exceptions import LLMProviderError
from conductor.pipelines.models import ReasoningConfig


@dataclass
class LLMCompletion:
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ReasoningProvider(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str, config: ReasoningConfig) -> LLMCompletion:
        """Return the completion; raise LLMProviderError on failure."""
        ...


class AnthropicReasoningProvider:
    """Reasoning through the Anthropic Messages API"""

    name = "anthropic"

    def __init__(self, client: AsyncAnthropic):
        self.client = client

    async def complete(self, system_prompt: str, user_prompt: str, config: ReasoningConfig) -> LLMCompletion:
        try:
            response = await self.client.messages.create(
                model=config.model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            raise LLMProviderError(self.name, str(e)) from e

        text = ""
        for block in response.content:
            if hasattr(block, "text"):
                text += block.text

        if not text.strip():
            raise LLMProviderError(self.name, "Empty response from model")

        return LLMCompletion(
            content=text,
            model=getattr(response, "model", None) or config.model,
            provider=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


class OpenAIReasoningProvider:
    """Reasoning through OpenAI chat completions in JSON mode"""

    name = "openai"

    def __init__(self, client: AsyncOpenAI):
        self.client = client

    async def complete(self, system_prompt: str, user_prompt: str, config: ReasoningConfig) -> LLMCompletion:
        try:
            response = await self.client.chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise LLMProviderError(self.name, str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            raise LLMProviderError(self.name, "Empty response from model")

        usage = response.usage
        return LLMCompletion(
            content=response.choices[0].message.content,
            model=getattr(response, "model", None) or config.model,
            provider=self.name,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


class ProviderRouter:
    """Dispatches to the provider named by config.provider"""

    def __init__(self, providers: Mapping[str, ReasoningProvider]):
        self.providers: Dict[str, ReasoningProvider] = dict(providers)

    async def complete(self, system_prompt: str, user_prompt: str, config: ReasoningConfig) -> LLMCompletion:
        provider = self.providers.get(config.provider)
        if provider is None:
            raise LLMProviderError(
                config.provider,
                f"Provider not configured (available: {', '.join(sorted(self.providers)) or 'none'})"
            )
        return await provider.complete(system_prompt, user_prompt, config)


def compute_cost(
    pricing: Mapping[str, Mapping[str, float]],
    model: str,
    input_tokens: int,
    output_tokens: int
) -> float:
    """USD cost from per-million-token pricing; 0.0 for unknown models."""
    rates = pricing.get(model)
    if not rates:
        return 0.0
    return (
        input_tokens * rates.get("input", 0.0)
        + output_tokens * rates.get("output", 0.0)
    ) / 1_000_000


def create_reasoning_provider(config: Optional[Config] = None) -> ProviderRouter:
    """Build a router over every provider that has an API key configured."""
    config = config or get_config()
    providers: Dict[str, ReasoningProvider] = {}

    anthropic_key = config.get_anthropic_api_key()
    if anthropic_key:
        providers["anthropic"] = AnthropicReasoningProvider(AsyncAnthropic(api_key=anthropic_key))

    openai_key = config.get_openai_api_key()
    if openai_key:
        providers["openai"] = OpenAIReasoningProvider(AsyncOpenAI(api_key=openai_key))

    return ProviderRouter(providers)
