"""Main CLI application using Typer."""
import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from ..client import ChatListener, ChatOrchestrator, Message, Notification, NotificationLevel
from ..errors import ConfigurationError, ProviderError
from ..streaming import SSEDecoder
from .providers import configure_logging, credential_status, get_api_client, get_registry, get_settings

app = typer.Typer(
    name="charachat",
    help="Multi-character AI chat: streaming API server and terminal clients",
    no_args_is_help=True,
    add_completion=True,
)

console = Console()


class ConsoleListener(ChatListener):
    """Prints streamed reply text as it arrives."""

    def __init__(self) -> None:
        self._printed: dict[str, int] = {}

    def message_updated(self, message: Message) -> None:
        seen = self._printed.get(message.id, 0)
        if len(message.content) < seen:
            seen = 0
        console.print(message.content[seen:], end="", markup=False, highlight=False)
        self._printed[message.id] = len(message.content)

    def notify(self, notification: Notification) -> None:
        style = "red" if notification.level == NotificationLevel.ERROR else "dim"
        console.print(f"\n[{style}]{notification.title}: {notification.detail}[/{style}]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    env_file: str | None = typer.Option(None, "--env-file", help="Extra .env file to load"),
):
    """Run the chat API server."""
    import uvicorn

    from ..server import create_app

    settings = get_settings(env_file)
    configure_logging(settings.log_level)

    missing = [kind.value for kind, ok in credential_status(settings).items() if not ok]
    if missing:
        console.print(f"[yellow]![/yellow] No credentials for: {', '.join(missing)}")

    console.print(f"[dim]Store: {settings.store_backend} | uploads: {settings.upload_dir}[/dim]")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


@app.command()
def models(env_file: str | None = typer.Option(None, "--env-file", help="Extra .env file to load")):
    """Show which backend serves which model."""
    settings = get_settings(env_file)
    registry = get_registry(settings)
    status = credential_status(settings)

    table = Table(title="Model routing")
    table.add_column("Model", style="cyan")
    table.add_column("Backend")
    table.add_column("Credential")

    for name, kind in sorted(registry.routes().items()):
        table.add_row(name, kind.value, "[green]set[/green]" if status[kind] else "[yellow]missing[/yellow]")

    default = registry.default_kind
    table.add_row(
        f"* (default: {settings.default_model})",
        default.value,
        "[green]set[/green]" if status[default] else "[yellow]missing[/yellow]",
    )
    console.print(table)


@app.command()
def health(env_file: str | None = typer.Option(None, "--env-file", help="Extra .env file to load")):
    """Check backend credentials and that the API server answers."""
    async def _health():
        settings = get_settings(env_file)
        all_healthy = True

        for kind, ok in credential_status(settings).items():
            if ok:
                console.print(f"[green]+[/green] {kind.value} credential: SET")
            else:
                console.print(f"[yellow]![/yellow] {kind.value} credential: NOT SET")

        async with get_api_client(settings) as api:
            try:
                characters = await api.list_characters()
                console.print(f"[green]+[/green] API server {settings.api_url}: OK ({len(characters)} characters)")
            except httpx.HTTPError as e:
                console.print(f"[red]x[/red] API server {settings.api_url}: FAILED ({e})")
                all_healthy = False

        if not all_healthy:
            raise typer.Exit(code=1)

    asyncio.run(_health())


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to send"),
    prompt: str = typer.Option("", "--prompt", help="System prompt (server default when empty)"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model to use"),
    api_url: str | None = typer.Option(None, "--api-url", help="Server address"),
):
    """Send one message and stream the reply to stdout."""
    async def _ask():
        settings = get_settings()
        configure_logging(settings.log_level)
        decoder = SSEDecoder()

        async with get_api_client(settings, api_url) as api:
            try:
                async for chunk in api.stream_chat(
                    [{"role": "user", "content": message}],
                    {"prompt": prompt, "model": model},
                    model=model,
                ):
                    for fragment in decoder.feed(chunk):
                        console.print(fragment, end="", markup=False, highlight=False)
                for fragment in decoder.finish():
                    console.print(fragment, end="", markup=False, highlight=False)
                console.print()
            except (ConfigurationError, ProviderError) as e:
                console.print(f"\n[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

    asyncio.run(_ask())


@app.command()
def chat(
    character_name: str | None = typer.Option(None, "--character", "-c", help="Character name"),
    api_url: str | None = typer.Option(None, "--api-url", help="Server address"),
):
    """Interactive line-based chat with a stored character."""
    async def _chat():
        settings = get_settings()
        configure_logging(settings.log_level)

        async with get_api_client(settings, api_url) as api:
            try:
                characters = await api.list_characters()
            except httpx.HTTPError as e:
                console.print(f"[red]Error: cannot reach server ({e})[/red]")
                raise typer.Exit(code=1)

            if not characters:
                console.print("[red]Error: no characters available[/red]")
                raise typer.Exit(code=1)

            character = characters[0]
            if character_name:
                matches = [c for c in characters if c.name.lower() == character_name.lower()]
                if not matches:
                    console.print(f"[red]Error: no character named '{character_name}'[/red]")
                    raise typer.Exit(code=1)
                character = matches[0]

            orchestrator = ChatOrchestrator(api, ConsoleListener(), default_model=settings.default_model)
            await orchestrator.load_messages(character.id)

            console.print(f"[bold cyan]Chatting with {character.name}[/bold cyan] [dim]({character.model})[/dim]")
            console.print("[dim]Commands: /regen, /clear, /quit[/dim]\n")

            while True:
                try:
                    user_input = await asyncio.to_thread(console.input, "[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = user_input.strip().lower()
                if command in ("/quit", "/exit", "/q"):
                    console.print("[dim]Goodbye![/dim]")
                    break
                if command == "/clear":
                    await orchestrator.clear_conversation(character.id)
                    console.print("[dim]Conversation cleared.[/dim]")
                    continue

                console.print(f"[bold green]{character.name}:[/bold green] ", end="")
                if command == "/regen":
                    await orchestrator.regenerate_last_message(character)
                else:
                    await orchestrator.send_message(user_input, character)
                console.print("\n")

    asyncio.run(_chat())


@app.command(name="tui")
def tui_command(
    character_name: str | None = typer.Option(None, "--character", "-c", help="Character to open first"),
    api_url: str | None = typer.Option(None, "--api-url", help="Server address"),
):
    """Launch the Textual chat client."""
    from ..ui import run_textual_tui

    settings = get_settings()
    try:
        asyncio.run(run_textual_tui(
            api_url or settings.api_url,
            default_model=settings.default_model,
            character_name=character_name,
        ))
    except KeyboardInterrupt:
        pass


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
