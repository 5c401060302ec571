"""OpenAI chat-completions backend."""

import logging

import openai

from codepair.config import OpenAISettings
from codepair.providers.base import GenerationOptions, ModelProvider, strip_model_noise
from codepair.providers.errors import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderError,
    UnrecognizedResponseError,
    UpstreamRateLimitError,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful code completion assistant. Provide only the code "
    "completion without explanations unless specifically asked."
)

LANGUAGE_HINTS = {
    "typescript": "Ensure the completion includes proper TypeScript types.",
    "python": "Follow Python PEP 8 style guidelines.",
}


def decode_chat_completion(response) -> list[str]:
    """Pull completion texts out of a chat-completions response."""
    choices = getattr(response, "choices", None)
    if choices is None:
        raise UnrecognizedResponseError("Response has no choices", "openai")

    texts = []
    for choice in choices:
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None) if message is not None else None
        if content:
            texts.append(strip_model_noise(content))
    return texts


class OpenAIProvider(ModelProvider):
    name = "openai"

    def __init__(self, settings: OpenAISettings | None = None, client=None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or OpenAISettings()
        self._client = client

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.timeout,
            )
        return self._client

    def format_prompt(self, prompt: str, options: GenerationOptions) -> str:
        hint = LANGUAGE_HINTS.get(options.language)
        return f"{prompt}\n\n{hint}" if hint else prompt

    def _generate(self, prompt: str, options: GenerationOptions) -> list[str]:
        try:
            response = self.client.chat.completions.create(
                model=self.settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                stop=options.stop,
                n=options.n,
            )
        except openai.AuthenticationError as e:
            raise ProviderAuthError(
                "OpenAI authentication failed. Please check your API key.", self.name
            ) from e
        except openai.RateLimitError as e:
            raise UpstreamRateLimitError("OpenAI rate limit exceeded.", self.name) from e
        except openai.APIConnectionError as e:
            raise ProviderConnectionError(f"Unable to reach OpenAI: {e}", self.name) from e
        except openai.OpenAIError as e:
            logger.error("OpenAI API error: %s", e)
            raise ProviderError(f"OpenAI completion failed: {e}", self.name) from e

        return decode_chat_completion(response)

    def check_health(self) -> bool:
        return bool(self.settings.api_key)
