"""CodePair CLI - session-aware AI code completion."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from codepair import __version__
from codepair.config import PROVIDER_NAMES, load_settings
from codepair.logs import configure_logging

app = typer.Typer(
    name="codepair",
    help="AI code completion with pluggable model backends.",
    no_args_is_help=True,
)
mcp_app = typer.Typer(help="MCP server management.")

app.add_typer(mcp_app, name="mcp")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"codepair {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Override CODEPAIR_LOG_LEVEL")
    ] = None,
) -> None:
    """CodePair - AI code completion with pluggable model backends."""
    try:
        settings = load_settings()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(log_level or settings.log_level)


# ── Suggestion commands ──────────────────────────────────────────


@app.command("suggest")
def suggest(
    path: Annotated[Path, typer.Argument(help="Source file to complete")],
    cursor: Annotated[
        Optional[int], typer.Option("--cursor", "-c", help="Cursor offset (default: end of file)")
    ] = None,
    language: Annotated[str, typer.Option("--language", "-l", help="Source language")] = "javascript",
    provider: Annotated[
        Optional[str], typer.Option("--provider", "-p", help=f"One of: {', '.join(PROVIDER_NAMES)}")
    ] = None,
    completion_type: Annotated[
        Optional[str], typer.Option("--type", "-t", help="Completion hint: function or comment")
    ] = None,
) -> None:
    """Print suggestions for a cursor position in a file."""
    from codepair.service import CompletionService, SuggestionRequest
    from codepair.suggestions.models import CompletionOptions

    if not path.is_file():
        console.print(f"[red]Error:[/red] {path} is not a file")
        raise typer.Exit(1)

    code = path.read_text()
    position = len(code) if cursor is None else cursor
    if position < 0 or position > len(code):
        console.print(f"[red]Error:[/red] cursor must be between 0 and {len(code)}")
        raise typer.Exit(1)

    settings = load_settings()
    if provider:
        if provider not in PROVIDER_NAMES:
            console.print(f"[red]Unknown provider:[/red] {provider}")
            raise typer.Exit(1)
        settings = settings.model_copy(update={"provider": provider})

    service = CompletionService.from_settings(settings)
    try:
        suggestions = service.suggest(
            SuggestionRequest(
                code=code,
                cursor_position=position,
                language=language,
                options=CompletionOptions(completion_type=completion_type),
            )
        )
    finally:
        service.close()

    if not suggestions:
        console.print("[yellow]No suggestions this round.[/yellow]")
        return

    for i, s in enumerate(suggestions, 1):
        console.print(
            f"[bold cyan]#{i}[/bold cyan] [green]{s.type}[/green] "
            f"confidence {s.confidence:.0%} [dim]({s.source})[/dim]"
        )
        console.print(Syntax(s.text, language, line_numbers=False))


@app.command("detect")
def detect(
    line: Annotated[str, typer.Argument(help="A source line to classify")],
) -> None:
    """Show whether a line reads as an English description of code."""
    from codepair.suggestions.prompts import detect_english_to_code, extract_english_description

    if detect_english_to_code(line):
        console.print(f"[green]English-to-code:[/green] {extract_english_description(line)}")
    else:
        console.print("[dim]Code completion[/dim]")


@app.command("providers")
def providers() -> None:
    """List model providers and which one is configured."""
    settings = load_settings()
    table = Table(title="Model Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Role")

    for name in PROVIDER_NAMES:
        role = ""
        if name == settings.provider:
            role = "primary"
        elif name == settings.fallback_provider:
            role = "fallback"
        table.add_row(name, role)

    console.print(table)


# ── MCP commands ─────────────────────────────────────────────────


@mcp_app.command("serve")
def mcp_serve() -> None:
    """Start the MCP server (stdio transport)."""
    from codepair.mcp.server import run

    run()
