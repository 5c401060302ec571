"""Lexical code analysis: coarse structure facts and cursor windows."""

import re

from codepair.config import CONTEXT_WINDOW_LINES
from codepair.suggestions.models import CodeAnalysis, ContextWindow

# Per-language extraction rules. The first entry is the fallback for
# languages without their own table.
LANGUAGE_PATTERNS: dict[str, dict[str, re.Pattern]] = {
    "javascript": {
        "functions": re.compile(r"function\s+(\w+)\s*\([^)]*\)\s*\{"),
        "variables": re.compile(r"(?:let|const|var)\s+(\w+)"),
        "imports": re.compile(r"import\s+.*\s+from\s+['\"]([^'\"]+)['\"]"),
        "classes": re.compile(r"class\s+(\w+)"),
    },
    "python": {
        "functions": re.compile(r"def\s+(\w+)\s*\([^)]*\)\s*(?:->\s*[^:]+)?:"),
        "variables": re.compile(r"^\s*(\w+)\s*=(?!=)", re.MULTILINE),
        "imports": re.compile(r"(?:from\s+([\w.]+)\s+)?import\s+([^#\n]+)"),
        "classes": re.compile(r"class\s+(\w+)"),
    },
    "typescript": {
        "functions": re.compile(r"(?:function\s+(\w+)|(\w+)\s*:\s*\([^)]*\)\s*=>)"),
        "variables": re.compile(r"(?:let|const|var)\s+(\w+)"),
        "imports": re.compile(r"import\s+.*\s+from\s+['\"]([^'\"]+)['\"]"),
        "classes": re.compile(r"class\s+(\w+)"),
        "interfaces": re.compile(r"interface\s+(\w+)"),
    },
}

COMPLEXITY_KEYWORDS = ("if", "else", "for", "while", "switch", "case", "try", "catch")
_COMPLEXITY_RE = re.compile(r"\b(?:%s)\b" % "|".join(COMPLEXITY_KEYWORDS))


def _collect(pattern: re.Pattern, code: str) -> list[str]:
    names = []
    for match in pattern.finditer(code):
        name = next((g for g in match.groups() if g), None)
        if name:
            names.append(name.strip())
    return names


def calculate_complexity(code: str) -> int:
    return 1 + len(_COMPLEXITY_RE.findall(code))


def analyze_code(code: str, language: str = "javascript") -> CodeAnalysis:
    """Extract function, variable, import, class and interface names."""
    patterns = LANGUAGE_PATTERNS.get(language) or next(iter(LANGUAGE_PATTERNS.values()))
    found = {kind: _collect(pattern, code) for kind, pattern in patterns.items()}
    return CodeAnalysis(
        **found,
        complexity=calculate_complexity(code),
        line_count=len(code.split("\n")),
    )


def get_cursor_line(code: str, position: int) -> int:
    """Zero-based line index of an absolute character offset."""
    return code.count("\n", 0, max(0, position))


def get_context_window(
    code: str, cursor_position: int, window_size: int = CONTEXT_WINDOW_LINES
) -> ContextWindow:
    lines = code.split("\n")
    cursor_line = min(get_cursor_line(code, cursor_position), len(lines) - 1)
    half = window_size // 2

    start = max(0, cursor_line - half)
    end = min(len(lines), cursor_line + 1 + half)
    return ContextWindow(
        before="\n".join(lines[start:cursor_line]),
        current=lines[cursor_line],
        after="\n".join(lines[cursor_line + 1 : end]),
        line_number=cursor_line,
    )
