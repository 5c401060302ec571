"""Session data models for editing context."""

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

InteractionType = Literal["completion", "suggestion", "error"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return f"session_{uuid4().hex[:12]}"


class Interaction(BaseModel):
    """An interaction reported to a session, before truncation."""

    type: InteractionType
    input: str = ""
    output: Any = None
    metadata: dict = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    """One entry in a session's bounded history log."""

    timestamp: datetime = Field(default_factory=utcnow)
    type: InteractionType
    input: str = ""
    output: Any = None
    metadata: dict = Field(default_factory=dict)


class CurrentFile(BaseModel):
    path: str
    content: str
    language: str
    last_modified: datetime = Field(default_factory=utcnow)


class FileContext(BaseModel):
    """A cached project file (content already truncated)."""

    content: str
    language: str
    last_accessed: datetime = Field(default_factory=utcnow)


class ProjectContext(BaseModel):
    files: dict[str, FileContext] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    language: str | None = None
    framework: str | None = None
    # Cleared whenever files change so framework detection re-scans
    framework_scanned: bool = Field(default=False, exclude=True)


class Session(BaseModel):
    """A live editing session for one client."""

    id: str = Field(default_factory=new_session_id)
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    metadata: dict = Field(default_factory=dict)
    history: list[HistoryEntry] = Field(default_factory=list)
    current_file: CurrentFile | None = None
    project_context: ProjectContext = Field(default_factory=ProjectContext)


class RelevantFile(BaseModel):
    path: str
    content: str
    language: str
    relevance_score: int


class RelevantContext(BaseModel):
    """Context gathered from a session for one completion request."""

    current_file: CurrentFile | None = None
    recent_history: list[HistoryEntry] = Field(default_factory=list)
    project_files: list[RelevantFile] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    language: str | None = None


class SessionStats(BaseModel):
    id: str
    created_at: datetime
    last_activity: datetime
    history_count: int
    files_count: int
    language: str | None = None
    framework: str | None = None
