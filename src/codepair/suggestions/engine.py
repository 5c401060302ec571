"""Suggestion engine: cache, provider fallback chain and response normalization."""

import logging
import re
import threading

from codepair.config import CACHE_SIZE, CACHE_WINDOW, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from codepair.context.models import RelevantContext
from codepair.providers.base import GenerationOptions, ModelProvider
from codepair.suggestions.analyzer import analyze_code, get_context_window
from codepair.suggestions.models import (
    CompletionOptions,
    ContextWindow,
    InsertRange,
    Position,
    Suggestion,
    SuggestionType,
)
from codepair.suggestions.prompts import CURSOR_MARKER, build_prompt

logger = logging.getLogger(__name__)

WORD_RE = re.compile(r"\b\w+\b")
FENCE_RE = re.compile(r"```[\w+#-]*\n?")

BRACKETS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = set(BRACKETS.values())

BLOCK_LANGUAGES = frozenset({"javascript", "typescript", "java", "c", "cpp", "csharp", "go", "rust"})
COMPLETE_LINE_ENDINGS = (";", "{", "}")
COMMENT_PREFIXES = ("//", "/*", "*/", "* ")

BASE_CONFIDENCE = 0.5
BALANCED_BONUS = 0.2
RELEVANCE_BONUS = 0.2
LENGTH_PENALTY = 0.1
MIN_LENGTH = 10
MAX_LENGTH = 500

_CONTROL_WORDS = r"(?:if|for|while|switch|catch|return|else|new)\b"

# (type, rule) pairs applied to the stripped suggestion, first match wins
TYPE_RULES: list[tuple[SuggestionType, re.Pattern]] = [
    ("function", re.compile(r"^(?:async\s+)?(?:function\b|def\s)|=>")),
    ("class", re.compile(r"^(?:(?:public|private|export|abstract|final)\s+)*class\b")),
    ("import", re.compile(r"^(?:import\b|from\s+\S+\s+import\b|require\b|#include\b|using\s)")),
    ("comment", re.compile(r"^(?://|/\*|#(?!include\b))")),
    (
        "function",
        re.compile(
            r"^(?:[\w:<>\*&\[\],]+\s+)+[\*&]?(?!" + _CONTROL_WORDS + r")\w+\s*\([^;{}]*\)\s*(?:const\s*)?\{"
        ),
    ),
    ("variable", re.compile(r"^(?:(?:const|let|var)\s+\w+|[A-Za-z_]\w*(?:\s*:\s*[\w\[\], ]+)?\s*=(?!=))")),
]


def to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return sign + "".join(reversed(out))


def simple_hash(text: str) -> str:
    """32-bit multiply-add string hash in base 36. Collisions are possible."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return to_base36(h)


def cache_key(code: str, position: int, language: str) -> str:
    window = code[max(0, position - CACHE_WINDOW) : position + CACHE_WINDOW]
    return f"{language}_{position}_{simple_hash(window)}"


class SuggestionCache:
    """Bounded suggestion cache with first-in-first-out eviction."""

    def __init__(self, max_size: int = CACHE_SIZE):
        self.max_size = max_size
        self._data: dict[str, list[Suggestion]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> list[Suggestion] | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, suggestions: list[Suggestion]) -> None:
        with self._lock:
            if key not in self._data and len(self._data) >= self.max_size:
                oldest = next(iter(self._data))
                del self._data[oldest]
            self._data[key] = suggestions

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


# ── Response normalization ───────────────────────────────────────


def is_balanced(code: str) -> bool:
    stack = []
    for char in code:
        if char in BRACKETS:
            stack.append(BRACKETS[char])
        elif char in CLOSERS:
            if not stack or stack.pop() != char:
                return False
    return not stack


def is_complete_line(line: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped == "*":
        return True
    return stripped.endswith(COMPLETE_LINE_ENDINGS) or stripped.startswith(COMMENT_PREFIXES)


def clean_suggestion(raw: str, language: str) -> str:
    """Strip fences and cursor markers; drop a trailing partial statement."""
    cleaned = FENCE_RE.sub("", raw).strip()
    cleaned = cleaned.replace(CURSOR_MARKER, "")

    if language in BLOCK_LANGUAGES:
        lines = cleaned.split("\n")
        while lines and not is_complete_line(lines[-1]):
            lines.pop()
        cleaned = "\n".join(lines)
    return cleaned.strip()


def is_contextually_relevant(text: str, window: ContextWindow) -> bool:
    # Lines around the cursor only, never the cursor line itself
    context_words = set(WORD_RE.findall(f"{window.before}\n{window.after}"))
    return any(word in context_words for word in WORD_RE.findall(text))


def calculate_confidence(text: str, window: ContextWindow) -> float:
    confidence = BASE_CONFIDENCE
    if is_balanced(text):
        confidence += BALANCED_BONUS
    if is_contextually_relevant(text, window):
        confidence += RELEVANCE_BONUS
    length = len(text.strip())
    if length < MIN_LENGTH or length > MAX_LENGTH:
        confidence -= LENGTH_PENALTY
    return round(max(0.0, min(1.0, confidence)), 4)


def detect_suggestion_type(text: str) -> SuggestionType:
    stripped = text.strip()
    for kind, rule in TYPE_RULES:
        if rule.search(stripped):
            return kind
    return "statement"


def insert_range(window: ContextWindow) -> InsertRange:
    end_of_line = Position(line=window.line_number, character=len(window.current))
    return InsertRange(start=end_of_line, end=end_of_line)


def process_suggestions(
    raw, window: ContextWindow, language: str, source: str = ""
) -> list[Suggestion]:
    """Turn raw provider output into suggestion records."""
    if raw is None:
        return []
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raw = [raw]

    suggestions = []
    for item in raw:
        if not isinstance(item, str):
            continue
        text = clean_suggestion(item, language)
        if not text.strip():
            continue
        suggestions.append(
            Suggestion(
                text=text,
                insert_text=text,
                confidence=calculate_confidence(text, window),
                type=detect_suggestion_type(text),
                language=language,
                range=insert_range(window),
                source=source,
            )
        )
    return suggestions


class SuggestionEngine:
    """Generates suggestions through a primary provider and optional fallback.

    Never raises on provider trouble: the worst outcome is an empty list.
    """

    def __init__(
        self,
        provider: ModelProvider,
        fallback: ModelProvider | None = None,
        cache: SuggestionCache | None = None,
    ):
        self.provider = provider
        self.fallback = fallback
        self.cache = cache if cache is not None else SuggestionCache()

    def set_fallback_provider(self, fallback: ModelProvider | None) -> None:
        self.fallback = fallback

    def generate_suggestions(
        self,
        code: str,
        cursor_position: int,
        language: str = "javascript",
        options: CompletionOptions | None = None,
        context: RelevantContext | None = None,
    ) -> list[Suggestion]:
        options = options or CompletionOptions()
        key = cache_key(code, cursor_position, language)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return list(cached)

        try:
            suggestions = self._run(self.provider, code, cursor_position, language, options, context)
        except Exception as e:
            logger.error("Error generating suggestions with %s: %s", self.provider.name, e)
            if self.fallback is None:
                return []
            logger.info("Using fallback provider %s for suggestions", self.fallback.name)
            try:
                suggestions = self._run(self.fallback, code, cursor_position, language, options, context)
            except Exception as fallback_error:
                logger.error("Fallback provider also failed: %s", fallback_error)
                return []

        self.cache.put(key, suggestions)
        return list(suggestions)

    def _run(
        self,
        provider: ModelProvider,
        code: str,
        cursor_position: int,
        language: str,
        options: CompletionOptions,
        context: RelevantContext | None,
    ) -> list[Suggestion]:
        window = get_context_window(code, cursor_position)
        analysis = analyze_code(code, language)
        prompt = build_prompt(window, analysis, language, options, context)

        raw = provider.generate_completion(
            prompt,
            GenerationOptions(
                max_tokens=options.max_tokens or DEFAULT_MAX_TOKENS,
                temperature=(
                    options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
                ),
                language=language,
                completion_type=options.completion_type,
            ),
        )
        return process_suggestions(raw, window, language, source=provider.name)
