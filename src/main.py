#!/usr/bin/env python3
"""
Main entry point for the SimpleCov MCP Server
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from config import CoverageConfigError, ConfigurationManager
from coverage_store import CoverageLoadError
from server import SimpleCovMCPServer

logger = logging.getLogger("simplecov-mcp-server")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="MCP server exposing SimpleCov coverage results"
    )
    parser.add_argument(
        "project_root",
        nargs="?",
        type=Path,
        default=None,
        help="Directory to search upward from for coverage/.resultset.json "
             "(default: current directory)",
    )
    parser.add_argument(
        "--coverage-dir",
        default=None,
        help="SimpleCov coverage directory (overrides SIMPLECOV_COVERAGE_PATH)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (logs go to stderr)",
    )
    return parser.parse_args(argv)


async def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    # stdout carries the MCP stdio transport
    logging.basicConfig(level=args.log_level, stream=sys.stderr)

    config_manager = ConfigurationManager(
        project_root=args.project_root, coverage_path=args.coverage_dir
    )
    try:
        server = SimpleCovMCPServer(config_manager)
    except (CoverageConfigError, CoverageLoadError) as e:
        logger.error("Fatal error: %s", e)
        sys.exit(1)

    await server.serve()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
