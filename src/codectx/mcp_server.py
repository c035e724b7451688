# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for the project context engine.

This module implements the MCP protocol layer with ZERO business logic.
All business logic is delegated to ProjectContextService.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from codectx.config import Config
from codectx.log_config import ensure_data_directories, get_default_data_root, get_logs_dir
from codectx.logging_setup import setup_logging
from codectx.service import ProjectContextService

logger = logging.getLogger(__name__)

SERVER_NAME = "project-context-engine"


class ProjectContextMCPServer:
    """MCP Protocol Layer for the project context engine.

    Responsibilities:
    - Initialize MCP server and register tools
    - Translate MCP requests to service calls
    - Format service responses as MCP tool results
    - Handle MCP server lifecycle (startup, shutdown)

    Design Constraint: This layer contains ZERO business logic. Reference
    extraction, context assembly, caching and diffing live in ProjectContextService.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        service: Optional[ProjectContextService] = None,
        project_root: Optional[Path] = None,
        data_root: Optional[Path] = None,
    ):
        """Initialize MCP server.

        Args:
            config: Configuration object. If None, loads from the project root.
            service: Service layer instance. If None, creates default service.
            project_root: Project served by this instance. If None, uses cwd.
            data_root: Root directory for logs and snapshots. If None, uses ~/.codectx/
        """
        self.project_root = Path(project_root or Path.cwd()).resolve()
        if config is None:
            config = Config.for_project(self.project_root)
        self.config = config

        self.data_root = data_root or get_default_data_root()
        ensure_data_directories(self.data_root)

        if service is None:
            service = ProjectContextService(
                config=config,
                project_root=str(self.project_root),
                data_root=self.data_root,
            )
        self.service = service

        self.mcp = FastMCP(name=SERVER_NAME)
        self._register_tools()

        logger.info("ProjectContextMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server.

        Registers:
        - collect_context: Assemble and render project context for an intent
        - analyze_diff: Diff two versions of a file with semantic overlay
        - get_cache_statistics: Context cache counters
        - invalidate_cache: Drop cached context for files (or everything)
        """

        @self.mcp.tool()
        async def collect_context(
            intent: str,
            ctx: Context[ServerSession, None],
            target_files: Optional[List[str]] = None,
        ) -> Dict[str, Any]:
            """Collect project context for a code generation request.

            Finds files mentioned in the intent, loads them with any extra
            target files, samples similar files, and infers the project's
            coding style, common imports and tooling.

            Args:
                intent: Free-form description of the requested change
                ctx: MCP context for logging
                target_files: Extra files (relative to the project root) to include

            Returns:
                Dictionary with references, bundle, rendered_context and token_count
            """
            await ctx.info(f"Collecting context for: {intent[:80]}")
            try:
                result = self.service.prepare_context(intent, target_files)
            except Exception as e:
                await ctx.error(f"Error collecting context: {e}")
                raise

            await ctx.info(
                f"Context collected: {len(result.bundle.related_files)} related files, "
                f"{result.token_count} tokens"
            )
            return result.to_dict()

        @self.mcp.tool()
        async def analyze_diff(
            original: str,
            modified: str,
            ctx: Context[ServerSession, None],
            file_path: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Analyze the changes between two versions of a file.

            Args:
                original: File content before the change
                modified: File content after the change
                ctx: MCP context for logging
                file_path: Optional path, used to pick the parser and reported
                    in breaking changes

            Returns:
                Dictionary with hunks, semantic_changes, breaking_changes,
                stats, summary and a plain-text preview
            """
            try:
                analysis = self.service.analyze_diff(original, modified, file_path)
            except Exception as e:
                await ctx.error(f"Error analyzing diff: {e}")
                raise

            response = analysis.to_dict()
            response["preview"] = self.service.preview_diff(original, modified, file_path)
            await ctx.info(f"Diff analyzed: {analysis.summary}")
            return response

        @self.mcp.tool()
        async def get_cache_statistics(ctx: Context[ServerSession, None]) -> Dict[str, Any]:
            """Return context cache statistics (hits, misses, entries, size)."""
            return self.service.get_cache_statistics().to_dict()

        @self.mcp.tool()
        async def invalidate_cache(
            ctx: Context[ServerSession, None],
            files: Optional[List[str]] = None,
        ) -> Dict[str, Any]:
            """Invalidate cached context.

            Args:
                ctx: MCP context for logging
                files: Files whose cached context should be dropped. If omitted,
                    the whole cache is cleared.

            Returns:
                Dictionary with the number of removed entries
            """
            removed = self.service.invalidate_cache(files)
            await ctx.info(f"Invalidated {removed} cache entries")
            return {"removed": removed}

        logger.info(
            "MCP tools registered: collect_context, analyze_diff, "
            "get_cache_statistics, invalidate_cache"
        )

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: Transport type to use. Options:
                - "stdio": Standard input/output (default)
                - "streamable-http": HTTP transport
                - "sse": Server-sent events transport
        """
        if self.config.enable_file_watcher:
            self.service.start_file_watcher()

        logger.info(f"Starting MCP server with {transport} transport")
        try:
            self.mcp.run(transport=transport)  # type: ignore[arg-type]
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Shutdown the MCP server and cleanup resources."""
        logger.info("Shutting down MCP server")
        self.service.shutdown()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Project Context Engine MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Project directory to serve. Default: current directory",
    )
    parser.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help=f"Root directory for logs and cache snapshots. Default: {get_default_data_root()}",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level. Default: INFO",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for MCP server.

    Logs go to a JSON file under the data root and to stderr, leaving
    stdout to the stdio transport.
    """
    args = parse_args(argv)

    data_root = args.data_root or get_default_data_root()
    setup_logging(log_dir=get_logs_dir(data_root), log_level=getattr(logging, args.log_level))

    server = ProjectContextMCPServer(project_root=args.project_root, data_root=data_root)
    logger.info(
        f"Starting MCP server for {server.project_root} with data_root={server.data_root}"
    )
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
