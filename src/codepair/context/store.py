"""In-memory session storage with relevance ranking and idle expiry."""

import logging
import re
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from codepair.config import (
    CLEANUP_INTERVAL,
    FRAMEWORK_KEYWORDS,
    FRAMEWORK_THRESHOLD,
    HISTORY_KEEP,
    HISTORY_LIMIT,
    MAX_CONTEXT_SIZE,
    MAX_RELEVANT_FILES,
    MAX_SESSION_AGE,
    RECENT_HISTORY,
    RELEVANCE_THRESHOLD,
)
from codepair.context.models import (
    CurrentFile,
    FileContext,
    HistoryEntry,
    Interaction,
    RelevantContext,
    RelevantFile,
    Session,
    SessionStats,
    utcnow,
)

logger = logging.getLogger(__name__)

WORD_RE = re.compile(r"\b\w+\b")
ELLIPSIS = "..."


def word_set(text: str) -> set[str]:
    return set(WORD_RE.findall(text))


def truncate_content(content: str, max_length: int = MAX_CONTEXT_SIZE) -> str:
    """Cut content to at most max_length characters, marker included.

    Prefers the last whitespace boundary when it falls past 80% of the limit.
    """
    if len(content) <= max_length:
        return content

    truncated = content[: max(0, max_length - len(ELLIPSIS))]
    last_space = max(truncated.rfind(" "), truncated.rfind("\n"), truncated.rfind("\t"))
    if last_space > max_length * 0.8:
        return truncated[:last_space] + ELLIPSIS
    return truncated + ELLIPSIS


class SessionStore:
    """Owns all live sessions.

    Every public method takes the store lock, and so does the expiry sweep,
    so a sweep never deletes a session mid-update.
    """

    def __init__(
        self,
        max_session_age: float = MAX_SESSION_AGE,
        cleanup_interval: float = CLEANUP_INTERVAL,
        max_context_size: int = MAX_CONTEXT_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_session_age = timedelta(seconds=max_session_age)
        self.cleanup_interval = cleanup_interval
        self.max_context_size = max_context_size
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    # ── Lifecycle ────────────────────────────────────────────────

    def open(self) -> "SessionStore":
        """Start the periodic expiry sweep."""
        if self._sweeper is None or not self._sweeper.is_alive():
            self._stop.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="codepair-session-sweep", daemon=True
            )
            self._sweeper.start()
        return self

    def close(self) -> None:
        """Stop the sweep and drop every session."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1)
            self._sweeper = None
        with self._lock:
            self._sessions.clear()

    destroy = close

    def __enter__(self) -> "SessionStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.cleanup_interval):
            self.cleanup()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    # ── Sessions ─────────────────────────────────────────────────

    def create_session(self, session_id: str | None = None, metadata: dict | None = None) -> Session:
        """Create a session, replacing any existing one with the same id."""
        now = self._clock()
        kwargs = {"id": session_id} if session_id else {}
        session = Session(
            **kwargs,
            created_at=now,
            last_activity=now,
            metadata=metadata or {},
        )
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Look up a session and mark it active."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_activity = max(session.last_activity, self._clock())
            return session

    def update_file_context(
        self, session_id: str, path: str, content: str, language: str
    ) -> Session | None:
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None

            now = self._clock()
            session.current_file = CurrentFile(
                path=path, content=content, language=language, last_modified=now
            )
            project = session.project_context
            project.files[path] = FileContext(
                content=truncate_content(content, self.max_context_size),
                language=language,
                last_accessed=now,
            )
            project.framework_scanned = False
            if not project.language:
                project.language = language
            return session

    def update_project_dependencies(self, session_id: str, dependencies: list[str]) -> Session | None:
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None
            session.project_context.dependencies = list(dependencies)
            return session

    def add_to_history(self, session_id: str, interaction: Interaction) -> HistoryEntry | None:
        """Append a history entry; the log is cut back once it passes the limit."""
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None

            entry = HistoryEntry(
                timestamp=self._clock(),
                type=interaction.type,
                input=truncate_content(interaction.input or "", self.max_context_size),
                output=interaction.output,
                metadata=dict(interaction.metadata),
            )
            session.history.append(entry)
            if len(session.history) > HISTORY_LIMIT:
                session.history = session.history[-HISTORY_KEEP:]
            return entry

    # ── Context retrieval ────────────────────────────────────────

    def get_relevant_context(
        self, session_id: str, current_code: str, cursor_position: int = 0
    ) -> RelevantContext | None:
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None
            project = session.project_context
            return RelevantContext(
                current_file=session.current_file,
                recent_history=session.history[-RECENT_HISTORY:],
                project_files=self.get_relevant_files(session, current_code),
                dependencies=list(project.dependencies),
                language=project.language,
            )

    def get_relevant_files(self, session: Session, current_code: str) -> list[RelevantFile]:
        """Rank cached files by shared word tokens with the current buffer."""
        current_words = word_set(current_code)
        current_path = session.current_file.path if session.current_file else None

        relevant = []
        for path, data in session.project_context.files.items():
            if path == current_path:
                continue
            score = len(current_words & word_set(data.content))
            if score > RELEVANCE_THRESHOLD:
                relevant.append(
                    RelevantFile(
                        path=path,
                        content=data.content,
                        language=data.language,
                        relevance_score=score,
                    )
                )

        # sorted() is stable, so ties keep insertion order
        relevant = sorted(relevant, key=lambda f: f.relevance_score, reverse=True)
        return relevant[:MAX_RELEVANT_FILES]

    def detect_framework(self, session_id: str) -> str | None:
        """Detect the project framework from cached file contents."""
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None

            project = session.project_context
            if project.framework_scanned:
                return project.framework

            all_content = " ".join(f.content for f in project.files.values()).lower()
            detected = None
            for framework, keywords in FRAMEWORK_KEYWORDS.items():
                hits = sum(1 for keyword in keywords if keyword in all_content)
                if hits >= FRAMEWORK_THRESHOLD:
                    detected = framework
                    break

            project.framework = detected
            project.framework_scanned = True
            if detected:
                logger.info("Session %s: detected framework %s", session_id, detected)
            return detected

    def get_session_stats(self, session_id: str) -> SessionStats | None:
        with self._lock:
            session = self.get_session(session_id)
            if session is None:
                return None
            return SessionStats(
                id=session.id,
                created_at=session.created_at,
                last_activity=session.last_activity,
                history_count=len(session.history),
                files_count=len(session.project_context.files),
                language=session.project_context.language,
                framework=session.project_context.framework,
            )

    # ── Expiry ───────────────────────────────────────────────────

    def cleanup(self) -> int:
        """Remove sessions idle longer than the maximum age."""
        with self._lock:
            now = self._clock()
            expired = [
                sid
                for sid, session in self._sessions.items()
                if now - session.last_activity > self.max_session_age
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.info("Cleaned up %d expired sessions", len(expired))
        return len(expired)
