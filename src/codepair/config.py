"""Configuration and tuning constants for CodePair."""

import os
from functools import lru_cache

from pydantic import BaseModel, Field

# Session store
MAX_SESSION_AGE = 30 * 60  # seconds of inactivity before a session expires
CLEANUP_INTERVAL = 5 * 60  # seconds between expiry sweeps
MAX_CONTEXT_SIZE = 10_000  # characters kept per cached file / history input
HISTORY_LIMIT = 50
HISTORY_KEEP = 30
RECENT_HISTORY = 5
MAX_RELEVANT_FILES = 3
RELEVANCE_THRESHOLD = 2  # shared tokens must be strictly greater than this
FRAMEWORK_THRESHOLD = 2  # keyword hits needed to declare a framework

# Suggestion engine
CACHE_SIZE = 1000
CACHE_WINDOW = 200  # characters hashed either side of the cursor
CONTEXT_WINDOW_LINES = 500
DEFAULT_MAX_TOKENS = 150
DEFAULT_TEMPERATURE = 0.3

# Providers
REQUEST_TIMEOUT = 30.0
MAX_REQUESTS_PER_MINUTE = 60
RATE_LIMIT_WINDOW = 60.0

PROVIDER_NAMES = ("openai", "local", "chat", "mock")

# Framework keyword groups, checked in order
FRAMEWORK_KEYWORDS = {
    "react": ["react", "jsx", "usestate", "useeffect", "component"],
    "vue": ["vue", "template", "script", "style", "v-"],
    "angular": ["angular", "@component", "@injectable", "ngoninit"],
    "express": ["express", "app.get", "app.post", "middleware"],
    "django": ["django", "models.py", "views.py", "urls.py"],
    "flask": ["flask", "app.route", "@app.route"],
}

# File extension used for the "current file" of a completion request
LANGUAGE_EXTENSIONS = {
    "javascript": "js",
    "typescript": "ts",
    "python": "py",
    "cpp": "cpp",
    "c": "c",
    "java": "java",
}


class OpenAISettings(BaseModel):
    api_key: str | None = None
    model: str = "gpt-3.5-turbo"
    base_url: str | None = None


class LocalSettings(BaseModel):
    endpoint: str = "http://localhost:11434/api/generate"
    model: str = "codellama"


class ChatSettings(BaseModel):
    endpoint: str = "https://api.puter.com/v1/ai/chat"
    api_key: str | None = None
    model: str = "gpt-3.5-turbo"


class Settings(BaseModel):
    """Runtime settings, read from the environment once at startup."""

    provider: str = "mock"
    fallback_provider: str | None = None
    request_timeout: float = REQUEST_TIMEOUT
    max_requests_per_minute: int = MAX_REQUESTS_PER_MINUTE
    log_level: str = "INFO"
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    local: LocalSettings = Field(default_factory=LocalSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)


def settings_from_env(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from environment variables."""
    env = os.environ if environ is None else environ

    provider = env.get("CODEPAIR_PROVIDER", "mock").lower()
    if provider not in PROVIDER_NAMES:
        raise ValueError(f"Unknown provider: {provider}")

    fallback = env.get("CODEPAIR_FALLBACK_PROVIDER")
    if fallback is None:
        # The hosted chat backend falls back to offline suggestions by default
        fallback = "mock" if provider == "chat" else None
    elif fallback.lower() in ("", "none"):
        fallback = None
    else:
        fallback = fallback.lower()
        if fallback not in PROVIDER_NAMES:
            raise ValueError(f"Unknown fallback provider: {fallback}")

    return Settings(
        provider=provider,
        fallback_provider=fallback,
        request_timeout=float(env.get("CODEPAIR_REQUEST_TIMEOUT", REQUEST_TIMEOUT)),
        max_requests_per_minute=int(
            env.get("CODEPAIR_MAX_REQUESTS_PER_MINUTE", MAX_REQUESTS_PER_MINUTE)
        ),
        log_level=env.get("CODEPAIR_LOG_LEVEL", "INFO").upper(),
        openai=OpenAISettings(
            api_key=env.get("OPENAI_API_KEY"),
            model=env.get("OPENAI_MODEL", "gpt-3.5-turbo"),
            base_url=env.get("OPENAI_BASE_URL"),
        ),
        local=LocalSettings(
            endpoint=env.get("LOCAL_MODEL_ENDPOINT", LocalSettings().endpoint),
            model=env.get("LOCAL_MODEL", "codellama"),
        ),
        chat=ChatSettings(
            endpoint=env.get("CHAT_API_ENDPOINT", ChatSettings().endpoint),
            api_key=env.get("CHAT_API_KEY"),
            model=env.get("CHAT_MODEL", "gpt-3.5-turbo"),
        ),
    )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Process-wide settings, read once."""
    return settings_from_env()
