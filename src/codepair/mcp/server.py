"""MCP server exposing code completion and session tools."""

from mcp.server.fastmcp import FastMCP

from codepair.service import (
    CompletionService,
    Feedback,
    ProjectFile,
    SuggestionRequest,
)
from codepair.suggestions.models import CompletionOptions

mcp = FastMCP("codepair")
service: CompletionService | None = None


def get_service() -> CompletionService:
    global service
    if service is None:
        service = CompletionService.from_settings().open()
    return service


def run() -> None:
    """Serve over stdio until the client disconnects."""
    svc = get_service()
    try:
        mcp.run()
    finally:
        svc.close()


@mcp.tool()
def get_suggestions(
    code: str,
    cursor_position: int,
    language: str = "javascript",
    session_id: str | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
    completion_type: str | None = None,
) -> list[dict] | str:
    """Get ranked code suggestions for a cursor position.

    A comment describing code in plain English (e.g. "// create a function
    that adds two numbers") is turned into an implementation; otherwise the
    code at the cursor is completed.

    Args:
        code: Full text of the buffer being edited
        cursor_position: Character offset of the cursor in code
        language: Language of the buffer (javascript, typescript, python, cpp, c, java)
        session_id: Optional - session whose project files inform the suggestion
        max_tokens: Optional - completion length limit
        temperature: Optional - sampling temperature
        completion_type: Optional - "function" or "comment" to steer the completion
    """
    if cursor_position < 0:
        return "cursor_position must be >= 0"
    request = SuggestionRequest(
        code=code,
        cursor_position=cursor_position,
        language=language,
        session_id=session_id,
        options=CompletionOptions(
            max_tokens=max_tokens,
            temperature=temperature,
            completion_type=completion_type,
        ),
    )
    return [s.model_dump() for s in get_service().suggest(request)]


@mcp.tool()
def build_client_prompt(
    code: str,
    cursor_position: int,
    language: str = "javascript",
    session_id: str | None = None,
) -> dict | str:
    """Build a completion prompt for a client that runs the model itself.

    Use this when the client has its own model access. Send the model's raw
    answer to process_client_response to get normalized suggestions.

    Args:
        code: Full text of the buffer being edited
        cursor_position: Character offset of the cursor in code
        language: Language of the buffer
        session_id: Optional - session whose project files inform the prompt
    """
    if cursor_position < 0:
        return "cursor_position must be >= 0"
    request = SuggestionRequest(
        code=code, cursor_position=cursor_position, language=language, session_id=session_id
    )
    return get_service().build_client_prompt(request)


@mcp.tool()
def process_client_response(
    response: dict | str,
    code: str,
    cursor_position: int,
    language: str = "javascript",
) -> list[dict]:
    """Turn a raw model answer obtained by the client into suggestions.

    Args:
        response: The model's answer, as text or a chat response object
        code: Buffer the prompt was built from
        cursor_position: Cursor offset the prompt was built for
        language: Language of the buffer
    """
    suggestions = get_service().process_client_response(response, code, cursor_position, language)
    return [s.model_dump() for s in suggestions]


@mcp.tool()
def create_session(session_id: str | None = None, metadata: dict | None = None) -> dict:
    """Start (or resume) an editing session.

    Sessions hold project files and recent history so suggestions can draw on
    related code. They expire after 30 minutes without activity.

    Args:
        session_id: Optional - id to use; generated when omitted
        metadata: Optional - free-form client metadata
    """
    svc = get_service()
    session = svc.create_session(session_id, metadata)
    stats = svc.session_stats(session.id)
    return {"session_id": session.id, "session": stats.model_dump(mode="json") if stats else None}


@mcp.tool()
def get_session_stats(session_id: str) -> dict | str:
    """Get counts and detected language/framework for a session.

    Args:
        session_id: The session ID to inspect
    """
    stats = get_service().session_stats(session_id)
    if stats is None:
        return f"Session {session_id} not found"
    return stats.model_dump(mode="json")


@mcp.tool()
def sync_context(
    session_id: str,
    files: list[dict],
    dependencies: list[str] | None = None,
) -> dict | str:
    """Load project files into a session and detect the framework.

    Args:
        session_id: Session to update
        files: Files as {"path", "content", "language"} objects
        dependencies: Optional - declared project dependencies
    """
    svc = get_service()
    if svc.session_stats(session_id) is None:
        return f"Session {session_id} not found"
    framework = svc.sync_context(
        session_id,
        [ProjectFile.model_validate(f) for f in files],
        dependencies,
    )
    stats = svc.session_stats(session_id)
    return {
        "success": True,
        "framework": framework,
        "stats": stats.model_dump(mode="json") if stats else None,
    }


@mcp.tool()
def report_feedback(
    session_id: str,
    suggestion_id: str,
    accepted: bool = True,
    final_text: str | None = None,
) -> dict | str:
    """Report whether a suggestion was accepted, and how it was edited.

    Args:
        session_id: Session the suggestion belonged to
        suggestion_id: ID of the suggestion
        accepted: Whether the suggestion was inserted
        final_text: Optional - the text as finally kept after edits
    """
    feedback = Feedback(suggestion_id=suggestion_id, accepted=accepted, final_text=final_text)
    if not get_service().record_feedback(session_id, feedback):
        return f"Session {session_id} not found"
    return {"status": "recorded"}


@mcp.tool()
def send_message(message: dict) -> dict | None:
    """Send a channel message ({"type": "ping"} or {"type": "suggestion_request", ...}).

    Args:
        message: The message object
    """
    return get_service().handle_message(message)


@mcp.tool()
def health() -> dict:
    """Report server health and the active provider."""
    return get_service().health()
