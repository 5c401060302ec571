"""Local model server backend (Ollama-style /api/generate)."""

import re

import httpx

from codepair.config import LocalSettings
from codepair.providers.base import GenerationOptions, ModelProvider
from codepair.providers.errors import UnrecognizedResponseError, translate_http_error

INFILL_TOKEN_RE = re.compile(r"</?(?:PRE|SUF|MID)>")
HEALTH_TIMEOUT = 5.0


def decode_generate_payload(payload) -> list[str]:
    """Decode a generate response: ``{"response": "..."}``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
        raise UnrecognizedResponseError("Expected a JSON object with a 'response' string", "local")
    content = INFILL_TOKEN_RE.sub("", payload["response"]).strip()
    return [content] if content else []


class LocalModelProvider(ModelProvider):
    name = "local"

    def __init__(
        self,
        settings: LocalSettings | None = None,
        client: httpx.Client | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.settings = settings or LocalSettings()
        self._client = client or httpx.Client(timeout=self.timeout)

    def format_prompt(self, prompt: str, options: GenerationOptions) -> str:
        # Infill format for code models like CodeLlama
        formatted = f"<PRE> {prompt} <SUF>"
        if options.completion_type == "function":
            formatted += " <MID>"
        return formatted

    def _generate(self, prompt: str, options: GenerationOptions) -> list[str]:
        body = {
            "model": self.settings.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": options.temperature,
                "top_p": 0.9,
                "num_predict": options.max_tokens,
                "stop": options.stop,
            },
        }
        try:
            response = self._client.post(self.settings.endpoint, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise translate_http_error(e, self.name) from e
        except ValueError as e:
            raise UnrecognizedResponseError(f"Invalid JSON from local model: {e}", self.name) from e

        return decode_generate_payload(payload)

    def check_health(self) -> bool:
        tags_url = self.settings.endpoint.replace("/api/generate", "/api/tags")
        try:
            return self._client.get(tags_url, timeout=HEALTH_TIMEOUT).status_code == 200
        except httpx.HTTPError:
            return False

    def close(self) -> None:
        self._client.close()
