import os
from typing import Annotated

import typer
from rich.console import Console

serve_app = typer.Typer(help="Run the resolver as an HTTP API or an MCP server.")
console = Console(stderr=True)

StoreOption = Annotated[
    str | None,
    typer.Option("--store", help="Association store: http or memory. Overrides SOURCE_RESOLVER_STORE."),
]


def _select_store(store: str | None) -> str:
    if store is not None:
        os.environ["SOURCE_RESOLVER_STORE"] = store
    return os.getenv("SOURCE_RESOLVER_STORE", "http")


@serve_app.command("api")
def api(
    host: str = "127.0.0.1",
    port: int = 8000,
    store: StoreOption = None,
) -> None:
    """Serve the resolver REST API with uvicorn."""
    import uvicorn

    from source_resolver.api.app import create_app

    kind = _select_store(store)
    console.print(f"[green]Resolver API on http://{host}:{port} (store: {kind})[/green]")
    uvicorn.run(create_app(), host=host, port=port)


@serve_app.command("mcp")
def mcp(
    transport: Annotated[str, typer.Option(help="stdio, sse or streamable-http.")] = "stdio",
    host: str = "127.0.0.1",
    port: int = 8002,
    store: StoreOption = None,
) -> None:
    """Expose the resolver tools to diagnosis agents over MCP."""
    from source_resolver.db.engine import get_store
    from source_resolver.mcp.server import create_mcp_server

    kind = _select_store(store)
    server = create_mcp_server(get_store())
    console.print(f"[green]Resolver MCP server (transport: {transport}, store: {kind})[/green]")
    if transport == "stdio":
        server.run(transport="stdio")
    else:
        server.run(transport=transport, host=host, port=port)  # type: ignore[arg-type]
