"""Completion service: the boundary between transports and the core."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from codepair.config import LANGUAGE_EXTENSIONS, Settings, load_settings
from codepair.context.models import Interaction, RelevantContext, Session, SessionStats
from codepair.context.store import SessionStore
from codepair.providers import UnrecognizedResponseError, create_provider
from codepair.providers.chat import decode_chat_payload
from codepair.suggestions.analyzer import analyze_code, get_context_window
from codepair.suggestions.engine import SuggestionEngine, process_suggestions
from codepair.suggestions.models import CompletionOptions, Suggestion
from codepair.suggestions.prompts import build_prompt

logger = logging.getLogger(__name__)

HISTORY_SNIPPET = 100
CLIENT_SOURCE = "client"


class SuggestionRequest(BaseModel):
    """Inbound completion request. Accepts camelCase keys from clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    cursor_position: int = Field(ge=0)
    language: str = "javascript"
    session_id: str | None = None
    options: CompletionOptions = Field(default_factory=CompletionOptions)


class ProjectFile(BaseModel):
    path: str
    content: str
    language: str


class Feedback(BaseModel):
    """Client report on what happened to a suggestion."""

    suggestion_id: str
    accepted: bool = True
    final_text: str | None = None


def current_file_path(language: str) -> str:
    return f"current.{LANGUAGE_EXTENSIONS.get(language, 'txt')}"


class CompletionService:
    """Wires the session store and suggestion engine together."""

    def __init__(self, store: SessionStore, engine: SuggestionEngine, provider_name: str = ""):
        self.store = store
        self.engine = engine
        self.provider_name = provider_name or engine.provider.name

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CompletionService":
        settings = settings or load_settings()
        primary = create_provider(settings.provider, settings)
        fallback = (
            create_provider(settings.fallback_provider, settings)
            if settings.fallback_provider
            else None
        )
        return cls(SessionStore(), SuggestionEngine(primary, fallback), settings.provider)

    def open(self) -> "CompletionService":
        self.store.open()
        return self

    def close(self) -> None:
        self.store.close()
        for provider in (self.engine.provider, self.engine.fallback):
            if provider is not None:
                provider.close()

    # ── Suggestions ──────────────────────────────────────────────

    def _session_context(self, request: SuggestionRequest) -> RelevantContext | None:
        """Record the buffer as the session's current file and gather related context."""
        if not request.session_id:
            return None
        self.store.update_file_context(
            request.session_id,
            current_file_path(request.language),
            request.code,
            request.language,
        )
        return self.store.get_relevant_context(
            request.session_id, request.code, request.cursor_position
        )

    def suggest(self, request: SuggestionRequest) -> list[Suggestion]:
        context = self._session_context(request)
        suggestions = self.engine.generate_suggestions(
            request.code,
            request.cursor_position,
            request.language,
            request.options,
            context,
        )

        if request.session_id:
            start = max(0, request.cursor_position - HISTORY_SNIPPET)
            self.store.add_to_history(
                request.session_id,
                Interaction(
                    type="completion",
                    input=request.code[start : request.cursor_position + HISTORY_SNIPPET],
                    output=[s.model_dump() for s in suggestions],
                    metadata={
                        "language": request.language,
                        "cursor_position": request.cursor_position,
                    },
                ),
            )
        return suggestions

    def build_client_prompt(self, request: SuggestionRequest) -> dict:
        """Build the session-aware prompt for a client that runs the model itself.

        No provider is called. The client sends the model's raw answer back
        through ``process_client_response``.
        """
        context = self._session_context(request)
        window = get_context_window(request.code, request.cursor_position)
        prompt = build_prompt(
            window,
            analyze_code(request.code, request.language),
            request.language,
            request.options,
            context,
        )
        return {
            "prompt": prompt,
            "context": {
                "language": request.language,
                "cursor_position": request.cursor_position,
                "session_id": request.session_id,
            },
        }

    def process_client_response(
        self, raw, code: str, cursor_position: int, language: str = "javascript"
    ) -> list[Suggestion]:
        """Normalize a model answer obtained by the client into suggestions."""
        try:
            texts = decode_chat_payload(raw)
        except UnrecognizedResponseError as e:
            logger.warning("Unrecognized client response: %s", e)
            return []
        window = get_context_window(code, cursor_position)
        return process_suggestions(texts, window, language, source=CLIENT_SOURCE)

    def record_feedback(self, session_id: str, feedback: Feedback) -> bool:
        """Feed an accepted or edited suggestion back into session history."""
        entry = self.store.add_to_history(
            session_id,
            Interaction(
                type="suggestion",
                input=feedback.final_text or "",
                output={"suggestion_id": feedback.suggestion_id, "accepted": feedback.accepted},
                metadata={"edited": feedback.final_text is not None},
            ),
        )
        return entry is not None

    # ── Sessions ─────────────────────────────────────────────────

    def create_session(self, session_id: str | None = None, metadata: dict | None = None) -> Session:
        """Return the existing session for an id, or create one."""
        if session_id:
            existing = self.store.get_session(session_id)
            if existing is not None:
                return existing
        return self.store.create_session(session_id, metadata)

    def session_stats(self, session_id: str) -> SessionStats | None:
        return self.store.get_session_stats(session_id)

    def sync_context(
        self,
        session_id: str,
        files: list[ProjectFile],
        dependencies: list[str] | None = None,
    ) -> str | None:
        """Bulk-load project files and dependencies, then detect the framework.

        A no-op returning None for an unknown session.
        """
        if self.store.get_session(session_id) is None:
            return None
        for f in files:
            self.store.update_file_context(session_id, f.path, f.content, f.language)
        if dependencies is not None:
            self.store.update_project_dependencies(session_id, dependencies)
        return self.store.detect_framework(session_id)

    def health(self) -> dict:
        return {
            "status": "healthy",
            "provider": self.provider_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ── Message channel ──────────────────────────────────────────

    def handle_message(self, data: dict) -> dict | None:
        """Answer one channel message; unknown message types get no reply."""
        message_type = data.get("type")
        try:
            if message_type == "ping":
                return {"type": "pong"}
            if message_type == "suggestion_request":
                request = SuggestionRequest.model_validate(
                    {k: v for k, v in data.items() if k not in ("type", "id")}
                )
                suggestions = self.suggest(request)
                return {
                    "type": "suggestions",
                    "id": data.get("id"),
                    "suggestions": [s.model_dump() for s in suggestions],
                }
        except (ValidationError, ValueError) as e:
            logger.warning("Bad channel message: %s", e)
            return {"type": "error", "error": str(e)}
        return None
