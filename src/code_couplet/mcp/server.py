"""FastMCP server exposing code-couplet tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from code_couplet.core.index import CouplingWorkspace
from code_couplet.store.paths import map_to_storage_path


def create_mcp_server(workspace: CouplingWorkspace) -> FastMCP:
    """Create a FastMCP server wired to the given workspace."""

    mcp = FastMCP("code-couplet", instructions="Inspect comment-to-code pins and report pins that drifted.")

    @mcp.tool()
    async def check_file(path: str) -> list[dict[str, Any]]:
        """Validate the pins of a source file and return every mismatch."""
        findings = await workspace.get_mismatches(Path(path))
        return [f.model_dump(mode="json", by_alias=True) for f in findings]

    @mcp.tool()
    async def list_pins(path: str) -> list[dict[str, Any]]:
        """List the pins stored for a source file."""
        schema = await workspace.get_schema(Path(path))
        return [c.model_dump(mode="json", by_alias=True) for c in schema.comments]

    @mcp.tool()
    async def storage_path(path: str) -> dict[str, str]:
        """Show the save root and mapping file used for a source file."""
        root = workspace.resolver.resolve(Path(path))
        return {"root": str(root), "mapping": str(map_to_storage_path(root, Path(path)))}

    return mcp
