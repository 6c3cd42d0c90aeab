"""
Main MCP server implementation for the SimpleCov MCP Server
"""

import logging
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from config import ConfigurationManager
from coverage_analyzer import CoverageAnalyzer
from coverage_store import CoverageStore
from mcp_handler import MCPHandler, ToolResponse

logger = logging.getLogger(__name__)

SUMMARY_URI = "simplecov://summary"
FILES_URI = "simplecov://files"


class ToolError(Exception):
    """Raised inside the MCP callback so the SDK flags the result as an error"""


class SimpleCovMCPServer:
    """MCP server answering coverage queries over a SimpleCov result set"""

    def __init__(
        self,
        config_manager: Optional[ConfigurationManager] = None,
        store: Optional[CoverageStore] = None,
    ):
        self.server = Server("simplecov")
        self.config_manager = config_manager or ConfigurationManager()
        if store is None:
            store = CoverageStore.from_directory(self.config_manager.coverage_dir)
        self.store = store
        self.mcp_handler = MCPHandler(self.store)

    async def list_resources(self) -> List[Resource]:
        """List available resources"""
        return [
            Resource(
                uri=AnyUrl(SUMMARY_URI),
                name="Coverage Summary",
                description="Overall line and branch coverage of the merged suites",
                mimeType="text/plain",
            ),
            Resource(
                uri=AnyUrl(FILES_URI),
                name="Per-File Coverage",
                description="Line and branch coverage of every file",
                mimeType="text/plain",
            ),
        ]

    async def read_resource(self, uri: AnyUrl) -> str:
        """Read a resource"""
        if str(uri) == SUMMARY_URI:
            return CoverageAnalyzer.format_coverage_summary(self.store.get_summary())
        elif str(uri) == FILES_URI:
            lines = []
            for stats in self.store.list_files():
                line = CoverageAnalyzer.format_ratio(
                    stats.line_coverage, stats.covered_lines, stats.total_lines
                )
                branch = CoverageAnalyzer.format_ratio(
                    stats.branch_coverage, stats.covered_branches, stats.total_branches
                )
                lines.append(f"{stats.file_path}\tline {line}\tbranch {branch or '-'}")
            return "\n".join(lines)
        else:
            raise ValueError(f"Unknown resource: {uri}")

    async def list_tools(self) -> List[Tool]:
        """List available tools"""
        return self.mcp_handler.get_tools()

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolResponse:
        """Call a tool"""
        return await self.mcp_handler.call_tool(name, arguments)

    async def serve(self) -> None:
        """Start the MCP server"""
        logger.info("Starting SimpleCov MCP Server (%d files)", len(self.store))

        @self.server.list_resources()
        async def handle_list_resources():
            return await self.list_resources()

        @self.server.read_resource()
        async def handle_read_resource(uri: AnyUrl):
            return await self.read_resource(uri)

        @self.server.list_tools()
        async def handle_list_tools():
            return await self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Dict[str, Any]
        ) -> List[TextContent]:
            response = await self.call_tool(name, arguments)
            if response.is_error:
                raise ToolError(response.text)
            return response.content

        # Run the server
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream, write_stream, self.server.create_initialization_options()
            )
