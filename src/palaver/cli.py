"""Command-line interface for palaver."""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from .adapters import ConsoleAdapter
from .core import get_storage
from .demo import create_demo_bot, create_on_turn_error
from .infrastructure import configure_structlog
from .models import get_settings

app = typer.Typer(
    name="palaver",
    help="palaver conversational bot CLI",
    add_completion=False,
)
console = Console()


def print_welcome():
    """Print welcome message."""
    console.print(
        Panel.fit(
            "[bold blue]palaver[/bold blue]\n"
            "[dim]Demo bot on the local console[/dim]\n\n"
            "Commands:\n"
            "  [green]profile[/green] - Fill in your user profile\n"
            "  [green]exit[/green] or [green]quit[/green] - Exit the chat",
            title="Welcome",
            border_style="blue",
        )
    )


def print_error(message: str):
    """Print an error message."""
    console.print(
        Panel(
            f"[red]{message}[/red]",
            title="[bold red]Error[/bold red]",
            border_style="red",
        )
    )


def write_bot_line(line: str):
    console.print(f"[bold green]Bot[/bold green] {line}", highlight=False)


async def read_user_line() -> str | None:
    try:
        return await asyncio.to_thread(Prompt.ask, "[bold blue]You[/bold blue]", console=console)
    except (EOFError, KeyboardInterrupt):
        return None


async def run_chat_loop():
    """Run the demo bot against the console until the user exits."""
    settings = get_settings()
    storage = get_storage(settings)
    bot = create_demo_bot(settings, storage)
    adapter = ConsoleAdapter(
        reader=read_user_line,
        writer=write_bot_line,
        on_turn_error=create_on_turn_error(bot.conversation_state),
    )

    print_welcome()
    try:
        await adapter.process_activity(bot.on_turn)
    finally:
        close = getattr(storage, "close", None)
        if close is not None:
            await close()
    console.print("[dim]Goodbye![/dim]")


@app.command()
def chat(
    debug: bool = typer.Option(False, "--debug", "-d", help="Log at DEBUG level"),
):
    """Start an interactive chat session with the demo bot."""
    configure_structlog("DEBUG" if debug else "WARNING")
    asyncio.run(run_chat_loop())


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Serve the demo bot on the Bot Framework messaging endpoint."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "palaver.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"palaver v{__version__}")


@app.command()
def config():
    """Show current configuration with secrets masked."""
    settings = get_settings()

    table = Table(title="Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    for key, value in settings.public_dict().items():
        table.add_row(key, "" if value is None else str(value))
    table.add_row("auth_enabled", str(settings.auth_enabled))
    table.add_row("qna_configured", str(settings.qna_configured))

    console.print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
