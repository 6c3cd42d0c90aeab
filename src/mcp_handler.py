"""
MCP protocol handling for the SimpleCov MCP Server
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from mcp.types import TextContent, Tool

from coverage_analyzer import CoverageAnalyzer
from coverage_store import CoverageStore
from models import SORT_KEYS, SORT_ORDERS, FileQuery

logger = logging.getLogger(__name__)

FILE_PATH_SCHEMA = {
    "type": "object",
    "properties": {
        "file_path": {
            "type": "string",
            "description": "File path (exact match or trailing match)",
        },
    },
    "required": ["file_path"],
}


@dataclass
class ToolResponse:
    """Text content of a tool call, flagged when the call failed"""

    content: List[TextContent]
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(item.text for item in self.content)


def _text(text: str, is_error: bool = False) -> ToolResponse:
    return ToolResponse(content=[TextContent(type="text", text=text)], is_error=is_error)


def _json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _optional_number(args: Dict[str, Any], key: str):
    value = args.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    if not 0 <= value <= 100:
        raise ValueError(f"{key} must be between 0 and 100, got {value}")
    return float(value)


def _required_path(args: Dict[str, Any]) -> str:
    file_path = args.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        raise ValueError("file_path is required")
    return file_path


class MCPHandler:
    """Handles MCP protocol interactions for coverage queries"""

    def __init__(self, store: CoverageStore):
        self.store = store

    def get_tools(self) -> List[Tool]:
        """List available coverage tools"""
        return [
            Tool(
                name="get_summary",
                description="Get the SimpleCov coverage summary: overall "
                            "line/branch coverage and file count",
                inputSchema={"type": "object", "properties": {}, "required": []},
            ),
            Tool(
                name="list_files",
                description="List covered files with their coverage. "
                            "Supports sorting and filtering",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "sort_by": {
                            "type": "string",
                            "enum": list(SORT_KEYS),
                            "description": "Sort key",
                            "default": "path",
                        },
                        "order": {
                            "type": "string",
                            "enum": list(SORT_ORDERS),
                            "description": "Sort order",
                            "default": "asc",
                        },
                        "min_coverage": {
                            "type": "number",
                            "minimum": 0,
                            "maximum": 100,
                            "description": "Only files with line coverage "
                                           ">= this percentage",
                        },
                        "max_coverage": {
                            "type": "number",
                            "minimum": 0,
                            "maximum": 100,
                            "description": "Only files with line coverage "
                                           "<= this percentage",
                        },
                        "path_pattern": {
                            "type": "string",
                            "description": "Only files whose path contains "
                                           "this string",
                        },
                    },
                    "required": [],
                },
            ),
            Tool(
                name="get_file_coverage",
                description="Get detailed coverage for one file: per-line "
                            "hits, uncovered lines and branch coverage",
                inputSchema=FILE_PATH_SCHEMA,
            ),
            Tool(
                name="get_uncovered_lines",
                description="Get the uncovered line numbers and branches of "
                            "one file, useful when deciding which tests to add",
                inputSchema=FILE_PATH_SCHEMA,
            ),
        ]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolResponse:
        """Handle tool calls for coverage queries"""
        args = arguments or {}
        try:
            if name == "get_summary":
                return self._get_summary()
            elif name == "list_files":
                return self._list_files(args)
            elif name == "get_file_coverage":
                return self._get_file_coverage(args)
            elif name == "get_uncovered_lines":
                return self._get_uncovered_lines(args)
            else:
                return _text(f"Unknown tool: {name}", is_error=True)
        except ValueError as e:
            return _text(f"Invalid arguments for {name}: {e}", is_error=True)
        except Exception as e:
            logger.error("Error calling tool %s: %s", name, e)
            return _text(f"Error executing {name}: {e}", is_error=True)

    @staticmethod
    def _not_found(file_path: str) -> ToolResponse:
        return _text(f"File not found in coverage data: {file_path}", is_error=True)

    def _get_summary(self) -> ToolResponse:
        return _text(_json(self.store.get_summary().to_dict()))

    def _list_files(self, args: Dict[str, Any]) -> ToolResponse:
        query = FileQuery(
            sort_by=args.get("sort_by") or "path",
            order=args.get("order") or "asc",
            min_coverage=_optional_number(args, "min_coverage"),
            max_coverage=_optional_number(args, "max_coverage"),
            path_pattern=args.get("path_pattern"),
        )
        files = self.store.list_files(query)

        result = [
            {
                "file": f.file_path,
                "line": CoverageAnalyzer.format_ratio(
                    f.line_coverage, f.covered_lines, f.total_lines
                ),
                "branch": CoverageAnalyzer.format_ratio(
                    f.branch_coverage, f.covered_branches, f.total_branches
                ),
                "missed": f.missed_lines,
            }
            for f in files
        ]
        return _text(f"{len(files)} files\n{_json(result)}")

    def _get_file_coverage(self, args: Dict[str, Any]) -> ToolResponse:
        file_path = _required_path(args)
        detail = self.store.get_file_coverage(file_path)
        if detail is None:
            return self._not_found(file_path)

        stats = detail.stats
        # Only relevant lines; not relevant ones carry no information
        relevant_lines = [line.to_dict() for line in detail.lines if line.hits is not None]
        return _text(
            _json(
                {
                    "filePath": stats.file_path,
                    "lineCoverage": CoverageAnalyzer.format_ratio(
                        stats.line_coverage, stats.covered_lines, stats.total_lines
                    ),
                    "branchCoverage": CoverageAnalyzer.format_ratio(
                        stats.branch_coverage,
                        stats.covered_branches,
                        stats.total_branches,
                    ),
                    "uncoveredLineNumbers": detail.uncovered_line_numbers,
                    "lines": relevant_lines,
                    "branches": [branch.to_dict() for branch in detail.branches],
                }
            )
        )

    def _get_uncovered_lines(self, args: Dict[str, Any]) -> ToolResponse:
        file_path = _required_path(args)
        report = self.store.get_uncovered_lines(file_path)
        if report is None:
            return self._not_found(file_path)
        return _text(_json(report.to_dict()))
