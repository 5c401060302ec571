"""Suggestion and code-analysis data models."""

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SuggestionType = Literal["function", "class", "import", "comment", "variable", "statement"]


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int
    character: int


class InsertRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position


class Suggestion(BaseModel):
    """A ranked code suggestion. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"suggestion_{uuid4().hex[:12]}")
    text: str
    insert_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    type: SuggestionType = "statement"
    language: str
    range: InsertRange
    source: str = ""


class ContextWindow(BaseModel):
    """Lines around the cursor."""

    before: str
    current: str
    after: str
    line_number: int


class CodeAnalysis(BaseModel):
    functions: list[str] = Field(default_factory=list)
    variables: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)
    interfaces: list[str] = Field(default_factory=list)
    complexity: int = 1
    line_count: int = 0


class CompletionOptions(BaseModel):
    """Per-request tuning passed by clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_tokens: int | None = None
    temperature: float | None = None
    completion_type: str | None = None
