import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console()


@serve_app.command("mcp")
def mcp(
    transport: str = "stdio",
) -> None:
    """Start the MCP server."""
    from code_couplet.cli.render import build_workspace
    from code_couplet.mcp.server import create_mcp_server

    server = create_mcp_server(build_workspace())
    if transport != "stdio":
        console.print(f"[green]Starting MCP server (transport: {transport})[/green]")
    server.run(transport=transport)  # type: ignore[arg-type]
