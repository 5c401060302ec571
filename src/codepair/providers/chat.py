"""Hosted chat-endpoint backend (Puter-style ``/ai/chat`` API).

Chat endpoints front several model families, so responses come back in
more than one shape. ``decode_chat_payload`` handles each known shape:

- ``{"message": {"content": "..."}}``            (GPT family)
- ``{"message": {"content": [{"text": ...}]}}``  (Claude family, content parts)
- ``{"choices": [{"message": {...}} | {"text": ...}]}``
- a bare string
"""

import logging

import httpx

from codepair.config import ChatSettings
from codepair.providers.base import GenerationOptions, ModelProvider, strip_model_noise
from codepair.providers.errors import UnrecognizedResponseError, translate_http_error
from codepair.providers.mock import MockProvider
from codepair.suggestions.prompts import CURSOR_MARKER

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful code completion assistant. Provide only the code completion "
    "without explanations unless specifically asked. Focus on generating "
    "syntactically correct and contextually relevant code."
)

LANGUAGE_HINTS = {
    "typescript": "Ensure the completion includes proper TypeScript types and interfaces.",
    "python": "Follow Python PEP 8 style guidelines and use appropriate type hints.",
    "javascript": "Use modern JavaScript ES6+ features where appropriate.",
}

COMPLETION_HINTS = {
    "function": "Complete the function implementation with proper error handling.",
    "class": "Complete the class definition with appropriate methods and properties.",
}


def _content_text(content) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        return "\n".join(p for p in parts if p)
    raise UnrecognizedResponseError(
        f"Unsupported message content type: {type(content).__name__}", "chat"
    )


def decode_chat_payload(payload) -> list[str]:
    """Normalize any known chat response shape to a list of strings."""
    if isinstance(payload, str):
        texts = [payload]
    elif isinstance(payload, dict) and isinstance(payload.get("message"), dict):
        texts = [_content_text(payload["message"].get("content", ""))]
    elif isinstance(payload, dict) and isinstance(payload.get("choices"), list):
        texts = []
        for choice in payload["choices"]:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message")
            if isinstance(message, dict):
                texts.append(_content_text(message.get("content") or ""))
            elif isinstance(choice.get("text"), str):
                texts.append(choice["text"])
    else:
        raise UnrecognizedResponseError("Could not extract content from chat response", "chat")

    cleaned = [strip_model_noise(t).replace(CURSOR_MARKER, "") for t in texts]
    return [t for t in cleaned if t]


class ChatProvider(ModelProvider):
    """Chat endpoint backend.

    Without an API key it answers offline from the canned generator rather
    than calling the network.
    """

    name = "chat"

    def __init__(
        self,
        settings: ChatSettings | None = None,
        client: httpx.Client | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.settings = settings or ChatSettings()
        self._client = client or httpx.Client(timeout=self.timeout)
        self._offline = MockProvider()

    def format_prompt(self, prompt: str, options: GenerationOptions) -> str:
        hints = [
            LANGUAGE_HINTS.get(options.language),
            COMPLETION_HINTS.get(options.completion_type or ""),
        ]
        return "".join([prompt] + [f"\n\n{h}" for h in hints if h])

    def _generate(self, prompt: str, options: GenerationOptions) -> list[str]:
        if not self.settings.api_key:
            logger.info("Chat provider has no API key, using offline suggestions")
            return self._offline._generate(prompt, options)

        body = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "stop": options.stop,
            "stream": False,
        }
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}
        try:
            response = self._client.post(self.settings.endpoint, json=body, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error("Chat API error: %s", e)
            raise translate_http_error(e, self.name) from e
        except ValueError as e:
            raise UnrecognizedResponseError(f"Invalid JSON from chat API: {e}", self.name) from e

        return decode_chat_payload(payload)

    def check_health(self) -> bool:
        return bool(self.settings.api_key)

    def close(self) -> None:
        self._client.close()
