# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Project Context & Change-Analysis Engine."""

from .assembler import ContextAssembler
from .cache import ContextCache
from .config import Config, ConfigurationError
from .context_formatter import ContextFormatter, TokenCounter
from .diff_engine import DiffEngine
from .models import (
    BreakingChange,
    CacheStatistics,
    DiffAnalysis,
    DiffHunk,
    DiffLine,
    ExtractedFileReference,
    FileRecord,
    ProjectConfigFlags,
    ProjectContextBundle,
    SemanticChange,
    StructureSummary,
    StyleProfile,
)
from .references import FileReferenceExtractor
from .scanner import FileCorpusScanner
from .service import ContextResult, ProjectContextService
from .style import StyleDetector

__version__ = "0.1.0"

__all__ = [
    "BreakingChange",
    "CacheStatistics",
    "Config",
    "ConfigurationError",
    "ContextAssembler",
    "ContextCache",
    "ContextFormatter",
    "ContextResult",
    "DiffAnalysis",
    "DiffEngine",
    "DiffHunk",
    "DiffLine",
    "ExtractedFileReference",
    "FileCorpusScanner",
    "FileRecord",
    "FileReferenceExtractor",
    "ProjectConfigFlags",
    "ProjectContextBundle",
    "ProjectContextService",
    "SemanticChange",
    "StructureSummary",
    "StyleDetector",
    "StyleProfile",
    "TokenCounter",
]

# Conditional import for MCP server (requires the mcp package)
try:
    from .mcp_server import ProjectContextMCPServer

    __all__.append("ProjectContextMCPServer")
except ImportError:
    # MCP package not available
    pass
