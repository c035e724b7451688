# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Source analyzers that outline imports, exports and function signatures.

Components:
- SourceAnalyzer: Abstract base class for analyzer strategies
- AnalyzerRegistry: Priority-based registry with capability checks
- PythonStructuralAnalyzer: AST-based analyzer for Python files
- TextualAnalyzer: Regex fallback for every other file (and broken Python)
"""

from codectx.analyzers.base import (
    AnalysisStrategy,
    AnalyzerRegistry,
    SourceAnalyzer,
    SourceOutline,
)
from codectx.analyzers.python_analyzer import PythonStructuralAnalyzer
from codectx.analyzers.textual_analyzer import TextualAnalyzer


def create_default_registry() -> AnalyzerRegistry:
    """Build a registry with the structural Python analyzer and the textual fallback."""
    registry = AnalyzerRegistry()
    registry.register(PythonStructuralAnalyzer())
    registry.register(TextualAnalyzer())
    return registry


__all__ = [
    "AnalysisStrategy",
    "AnalyzerRegistry",
    "PythonStructuralAnalyzer",
    "SourceAnalyzer",
    "SourceOutline",
    "TextualAnalyzer",
    "create_default_registry",
]
