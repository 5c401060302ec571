"""Base class and rate limiting for model providers."""

import re
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from pydantic import BaseModel, Field

from codepair.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_REQUESTS_PER_MINUTE,
    RATE_LIMIT_WINDOW,
    REQUEST_TIMEOUT,
)
from codepair.providers.errors import RateLimitExceeded

CODE_FENCE_RE = re.compile(r"```[\w+#-]*\n?")
PREAMBLE_RE = re.compile(r"^(Here's the completion:|The code completion is:)", re.IGNORECASE)


class GenerationOptions(BaseModel):
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    language: str = "javascript"
    completion_type: str | None = None
    stop: list[str] = Field(default_factory=lambda: ["\n\n", "```"])
    n: int = 1


class RateLimiter:
    """Rolling per-minute request counter."""

    def __init__(
        self,
        max_requests: int = MAX_REQUESTS_PER_MINUTE,
        window: float = RATE_LIMIT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self.requests = 0
        self.reset_time = clock() + window

    def check(self, provider: str = "") -> None:
        """Count one request, or raise if the window's budget is spent."""
        with self._lock:
            now = self._clock()
            if now > self.reset_time:
                self.requests = 0
                self.reset_time = now + self.window
            if self.requests >= self.max_requests:
                raise RateLimitExceeded(
                    "Rate limit exceeded. Please try again later.", provider
                )
            self.requests += 1


def strip_model_noise(content: str) -> str:
    """Remove fences and chatty preambles models like to add."""
    content = content.strip()
    content = PREAMBLE_RE.sub("", content).strip()
    content = CODE_FENCE_RE.sub("", content).strip()
    return content


class ModelProvider(ABC):
    """One AI backend behind a uniform completion contract.

    Subclasses implement ``_generate``; ``generate_completion`` always runs
    the rate-limit check first so an exhausted budget never reaches the
    network.
    """

    name: str = ""

    def __init__(
        self,
        max_requests_per_minute: int = MAX_REQUESTS_PER_MINUTE,
        timeout: float = REQUEST_TIMEOUT,
        rate_limiter: RateLimiter | None = None,
    ):
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter(max_requests_per_minute)

    def generate_completion(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> list[str]:
        options = options or GenerationOptions()
        self.rate_limiter.check(self.name)
        return self._generate(self.format_prompt(prompt, options), options)

    @abstractmethod
    def _generate(self, prompt: str, options: GenerationOptions) -> list[str]:
        """Call the backend and return cleaned completion strings."""
        ...

    def format_prompt(self, prompt: str, options: GenerationOptions) -> str:
        return prompt

    def check_health(self) -> bool:
        return True

    def close(self) -> None:
        """Release network resources."""
