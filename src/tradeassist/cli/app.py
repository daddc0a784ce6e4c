"""Main CLI application using Typer."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tradeassist import __version__

app = typer.Typer(
    name="tradeassist",
    help="TradeAssist - streaming shopping assistant for the storefront",
    no_args_is_help=True,
)

console = Console()


def _load(config_path: str | None):
    from tradeassist.config.loader import ConfigError, load_config

    try:
        return load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[red]Failed to load config: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def version():
    """Show tradeassist version."""
    console.print(f"tradeassist version {__version__}")


@app.command()
def start(
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
    host: str = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (overrides config)"),
    log_level: str = typer.Option("info", "--log-level", help="Uvicorn log level"),
):
    """Start the tradeassist API server."""
    import uvicorn

    from tradeassist.server.app import create_app

    config = _load(config_path)
    host = host or config.server.host
    port = port or config.server.port

    console.print(f"[green]Starting tradeassist server on {host}:{port}[/green]")
    console.print(f"Model: {config.model.name} ({config.inference.backend})")
    console.print("\nPress Ctrl+C to stop")

    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level)


@app.command()
def index(
    catalog_path: Path = typer.Argument(..., help="YAML catalog with products"),
    knowledge_path: Path = typer.Option(
        None, "--knowledge", "-k", help="YAML file with knowledge-base entries"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Embed catalog products and knowledge entries into the vector store."""
    from tradeassist.chat.factory import create_indices
    from tradeassist.commerce.catalog import CatalogError, load_catalog
    from tradeassist.rag.documents import knowledge_documents, product_documents

    config = _load(config_path)

    if not catalog_path.exists():
        console.print(f"[red]Catalog file not found: {catalog_path}[/red]")
        raise typer.Exit(code=1)

    try:
        catalog = load_catalog(catalog_path)
        knowledge = list(catalog.knowledge)
        if knowledge_path is not None:
            knowledge.extend(load_catalog(knowledge_path).knowledge)
    except CatalogError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    product_index, knowledge_index = create_indices(config)

    async def _index() -> tuple[int, int]:
        products = await product_index.add(product_documents(catalog.products))
        articles = await knowledge_index.add(knowledge_documents(knowledge))
        return products, articles

    with console.status("Embedding documents..."):
        products, articles = asyncio.run(_index())

    console.print(
        f"[green]Indexed {products} product documents and {articles} knowledge entries[/green]"
    )


@app.command()
def history(
    session_id: str = typer.Argument(..., help="Storefront session id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of messages to show"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Print a conversation's recent messages."""
    from tradeassist.errors import TradeAssistError
    from tradeassist.memory.manager import ConversationStore

    config = _load(config_path)
    store = ConversationStore(config.memory.storage_path)

    async def _load_history():
        conversation = await store.find_by_session(session_id)
        if conversation is None:
            return None, []
        return conversation, await store.history(conversation.id, limit=limit)

    try:
        conversation, records = asyncio.run(_load_history())
    except TradeAssistError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1) from e

    if conversation is None:
        console.print(f"[yellow]No conversation for session {session_id}[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title=conversation.title or conversation.session_id)
    table.add_column("Time", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Content")

    for record in records:
        content = escape(record.content)
        if record.function_calls:
            calls = ", ".join(call.name for call in record.function_calls)
            content = f"{content}\n[magenta]calls: {calls}[/magenta]".strip()
        elif record.role == "function":
            content = f"[magenta]{record.name}[/magenta] {escape(record.content[:200])}"
        table.add_row(record.created_at.strftime("%Y-%m-%d %H:%M:%S"), record.role, content)

    console.print(table)
    console.print(
        f"{conversation.message_count} messages, status [bold]{conversation.status}[/bold]"
    )


@app.command()
def prune(
    days: int = typer.Option(
        30, "--days", "-d", min=0, help="Keep archived conversations this many days"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Delete archived conversations inactive for more than DAYS days."""
    from tradeassist.errors import TradeAssistError
    from tradeassist.memory.manager import ConversationStore

    config = _load(config_path)
    store = ConversationStore(config.memory.storage_path)

    try:
        deleted = asyncio.run(store.prune_archived(days))
    except TradeAssistError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1) from e

    if deleted:
        console.print(f"[green]Pruned {deleted} archived conversation(s)[/green]")
    else:
        console.print(f"No archived conversations older than {days} days")


if __name__ == "__main__":
    app()
