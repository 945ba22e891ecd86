"""
MCP server for the mitrack ledger.

Exposes ledger operations through the Model Context Protocol.
"""

import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from mitrack_mcp.config import LedgerConfig
from mitrack_mcp.core.exceptions import LedgerError
from mitrack_mcp.core.ledger import Ledger
from mitrack_mcp.tools.tools import LedgerTools, create_tool_schemas

logger = logging.getLogger(__name__)


class LedgerServer:
    """MCP server for a mitrack ledger."""

    def __init__(self, config: LedgerConfig):
        """
        Initialize the MCP server.

        Args:
            config: Ledger configuration; the ledger directories are
                    created if they do not exist yet.
        """
        self.config = config
        self.ledger = Ledger.from_config(config)
        self.tools = LedgerTools(self.ledger)
        self.server = Server("mitrack-mcp")
        self.tool_names = {schema["name"] for schema in create_tool_schemas()}

        # Register handlers
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List available tools."""
            return [
                Tool(
                    name=schema["name"],
                    description=schema["description"],
                    inputSchema=schema["inputSchema"],
                )
                for schema in create_tool_schemas()
            ]

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return self.handle_tool_call(name, arguments)

    def handle_tool_call(self, name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Route a tool call to the matching LedgerTools method."""
        if name not in self.tool_names:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        try:
            result = getattr(self.tools, name)(**(arguments or {}))
        except (LedgerError, ValueError) as e:
            # Expected failures: unknown alias, unbalanced transaction, bad id...
            return [TextContent(type="text", text=f"Error: {e}")]
        except Exception as e:
            logger.exception(f"Error executing tool {name}")
            return [TextContent(type="text", text=f"Error executing tool: {e}")]

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def run(self) -> None:  # pragma: no cover
        """Run the MCP server using stdio transport."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


async def run_server(config: LedgerConfig) -> None:  # pragma: no cover
    """
    Run the mitrack MCP server.

    Args:
        config: Ledger configuration
    """
    server = LedgerServer(config)
    try:
        await server.run()
    finally:
        server.ledger.close()
