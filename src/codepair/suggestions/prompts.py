"""Prompt construction and English-description detection.

Detection is rule-table driven: a line is treated as an English task
description when any of these fire:

- a comment whose text holds a trigger phrase or natural-language template
- the raw line holding a trigger phrase
- the raw line matching a natural-language template
- the line reading as prose (stop-word ratio) with no code-looking tokens
"""

import logging
import re

from codepair.context.models import RelevantContext
from codepair.suggestions.models import CodeAnalysis, CompletionOptions, ContextWindow

logger = logging.getLogger(__name__)

CURSOR_MARKER = "|CURSOR|"
ENGLISH_PROMPT_MARKER = "Convert this English description to"

COMMENT_PATTERNS = [
    re.compile(r"^//\s*(.+)"),
    re.compile(r"^#\s*(.+)"),
    re.compile(r"^/\*\s*(.+)"),
]

TRIGGER_PHRASES = [
    "create a function",
    "write a function",
    "implement",
    "generate code",
    "make a",
    "build a",
    "add a method",
    "create a class",
    "write code to",
    "function that",
    "method that",
    "class that",
    "algorithm to",
    "code to",
    "script to",
    "loop through",
    "iterate over",
    "check if",
    "validate",
    "sort array",
    "filter array",
    "map array",
    "async function",
    "fetch data",
    "read file",
    "write file",
    "create interface",
    "fibonacci",
    "factorial",
]

NATURAL_LANGUAGE_PATTERNS = [
    re.compile(r"\b(create|make|build|write|implement|generate)\s+(a|an)?\s*(function|method|class|variable|array|object|interface)"),
    re.compile(r"\b(function|method|class)\s+(that|to|for)\s+"),
    re.compile(r"\b(calculate|compute|find|get|set|add|remove|delete|update|sort|filter|map)\s+"),
    re.compile(r"\b(loop|iterate|check|validate|parse|format|convert)\s+"),
    re.compile(r"\b(if|when|while|for|until)\s+.*\s+(then|do)\s+"),
    re.compile(r"\b(async|await)\s+(function|method)"),
    re.compile(r"\b(fetch|read|write|save)\s+(data|file)"),
    re.compile(r"\b(sort|filter|map)\s+(array|list)"),
]

STOP_WORDS = frozenset(
    "the a an and or but to for of in on at by with that is are will should can would".split()
)
PROSE_MIN_WORDS = 4
PROSE_STOP_WORD_RATIO = 0.15

CODE_PATTERNS = [
    re.compile(r"[{}();=]"),
    re.compile(r"\b(function|class|const|let|var|if|for|while|return)\b"),
    re.compile(r"\w+\.\w+"),
    re.compile(r"\w+\("),
]

COMPLETION_TYPE_INSTRUCTIONS = {
    "function": "Complete the function implementation:",
    "comment": "Generate appropriate code based on the comment:",
}
DEFAULT_INSTRUCTION = "Provide the most likely code completion:"

RELATED_FILE_CHARS = 500


def _has_trigger(text: str) -> bool:
    return any(phrase in text for phrase in TRIGGER_PHRASES)


def _matches_template(text: str) -> bool:
    return any(pattern.search(text) for pattern in NATURAL_LANGUAGE_PATTERNS)


def looks_like_prose(line: str) -> bool:
    words = line.split()
    if len(words) <= PROSE_MIN_WORDS:
        return False
    stop_words = sum(1 for word in words if word in STOP_WORDS)
    if stop_words / len(words) <= PROSE_STOP_WORD_RATIO:
        return False
    return not any(pattern.search(line) for pattern in CODE_PATTERNS)


def detect_english_to_code(current_line: str, before: str = "") -> bool:
    """Decide whether the cursor line is an English description of code to write."""
    line = current_line.strip().lower()
    if not line:
        return False

    for pattern in COMMENT_PATTERNS:
        match = pattern.match(line)
        if match:
            comment = match.group(1).strip()
            if _has_trigger(comment) or _matches_template(comment):
                logger.debug("English-to-code: comment %r", comment)
                return True

    if _has_trigger(line):
        logger.debug("English-to-code: trigger phrase")
        return True
    if _matches_template(line):
        logger.debug("English-to-code: natural language template")
        return True
    if looks_like_prose(line):
        logger.debug("English-to-code: prose")
        return True
    return False


def extract_english_description(current_line: str) -> str:
    """Strip comment markers from a description line."""
    line = current_line.strip()
    description = re.sub(r"^//\s*", "", line)
    description = re.sub(r"^#\s*", "", description)
    description = re.sub(r"^/\*\s*", "", description)
    description = re.sub(r"\s*\*/\s*$", "", description)
    return description.strip() or line


def _codebase_summary(analysis: CodeAnalysis) -> str:
    parts = []
    if analysis.functions:
        parts.append(f"Available functions: {', '.join(analysis.functions)}\n")
    if analysis.classes:
        parts.append(f"Available classes: {', '.join(analysis.classes)}\n")
    if analysis.imports:
        parts.append(f"Imports: {', '.join(analysis.imports[:5])}\n")
    return "".join(parts)


def _session_summary(context: RelevantContext | None) -> str:
    if context is None:
        return ""
    parts = []
    if context.dependencies:
        parts.append(f"Project dependencies: {', '.join(context.dependencies)}\n")
    for related in context.project_files:
        snippet = related.content[:RELATED_FILE_CHARS]
        parts.append(f"\nRelated file {related.path}:\n```{related.language}\n{snippet}\n```\n")
    return "".join(parts)


def build_prompt(
    window: ContextWindow,
    analysis: CodeAnalysis,
    language: str,
    options: CompletionOptions | None = None,
    context: RelevantContext | None = None,
) -> str:
    """Build a completion or English-to-code prompt for the cursor window."""
    options = options or CompletionOptions()

    if detect_english_to_code(window.current, window.before):
        prompt = f"You are an AI code generator that converts English descriptions to {language} code.\n\n"
        prompt += _codebase_summary(analysis)
        prompt += _session_summary(context)
        prompt += f"\nCode context:\n```{language}\n"
        if window.before.strip():
            prompt += window.before + "\n"
        prompt += "\n```\n\n"
        description = extract_english_description(window.current)
        prompt += f'{ENGLISH_PROMPT_MARKER} {language} code:\n"{description}"\n\n'
        prompt += (
            f"Provide only the {language} code implementation. "
            "Do not include explanations or the original English text."
        )
        return prompt

    prompt = f"You are an AI code completion assistant. Complete the following {language} code:\n\n"
    prompt += _codebase_summary(analysis)
    prompt += _session_summary(context)
    prompt += f"\nCode context:\n```{language}\n"
    prompt += window.before + "\n"
    prompt += window.current + CURSOR_MARKER
    if window.after.strip():
        prompt += "\n" + window.after
    prompt += "\n```\n\n"
    prompt += COMPLETION_TYPE_INSTRUCTIONS.get(options.completion_type or "", DEFAULT_INSTRUCTION)
    return prompt
