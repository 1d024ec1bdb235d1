"""
Upstream text-generation backends.

Each backend adapts one provider SDK to the single call shape the client
depends on. Provider errors are propagated without modification.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from anthropic import Anthropic
from openai import OpenAI

Message = Dict[str, str]


@dataclass(frozen=True)
class UpstreamResponse:
    """Text plus the token counts the provider billed for it."""
    text: str
    input_tokens: int
    output_tokens: int


class UpstreamBackend(Protocol):
    """The one operation the content engine needs from a provider."""

    def invoke(
        self,
        model: str,
        system: Optional[str],
        messages: List[Message],
        max_tokens: int,
        temperature: float,
    ) -> UpstreamResponse:
        ...


class AnthropicBackend:
    """Claude messages API backend."""

    def __init__(self, api_key: Optional[str] = None):
        # The SDK falls back to ANTHROPIC_API_KEY when api_key is None
        self.client = Anthropic(api_key=api_key) if api_key else Anthropic()

    def invoke(
        self,
        model: str,
        system: Optional[str],
        messages: List[Message],
        max_tokens: int,
        temperature: float,
    ) -> UpstreamResponse:
        kwargs = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }
        if system:
            kwargs["system"] = system

        response = self.client.messages.create(**kwargs)

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        return UpstreamResponse(
            text=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


class OpenAIBackend:
    """OpenAI chat completions backend."""

    def __init__(self, api_key: Optional[str] = None):
        self.client = OpenAI(api_key=api_key) if api_key else OpenAI()

    def invoke(
        self,
        model: str,
        system: Optional[str],
        messages: List[Message],
        max_tokens: int,
        temperature: float,
    ) -> UpstreamResponse:
        chat_messages = list(messages)
        if system:
            chat_messages.insert(0, {"role": "system", "content": system})

        response = self.client.chat.completions.create(
            model=model,
            messages=chat_messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        usage = response.usage
        if not usage:
            raise ValueError("OpenAI response missing usage information")

        return UpstreamResponse(
            text=response.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
        )


PROVIDERS = {
    "anthropic": AnthropicBackend,
    "openai": OpenAIBackend,
}


def build_backend(provider: str, api_key: Optional[str] = None) -> UpstreamBackend:
    """Construct the backend for a provider name.

    Raises:
        ValueError: If the provider is not supported
    """
    try:
        backend_class = PROVIDERS[provider.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported provider: {provider}. Must be one of: {sorted(PROVIDERS)}"
        )
    return backend_class(api_key=api_key)
