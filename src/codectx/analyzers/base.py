# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Base interface and registry for source analyzer strategies.

Source analysis has two tiers:
1. Structural analyzers parse the source with a real parser and are exact.
2. Textual analyzers fall back to regular expressions and accept any text.

Each analyzer declares which extensions it supports through an explicit
capability check. The registry walks analyzers in priority order (highest
first) and returns the first outline produced, so a structural analyzer
that cannot parse a file (e.g. a syntax error) hands it to the textual tier.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class AnalysisStrategy:
    """How an outline was produced."""

    STRUCTURAL = "structural"
    TEXTUAL = "textual"


@dataclass
class SourceOutline:
    """Imports, exports and function signatures of one source text.

    functions maps a function name to its parameter list text; methods are
    keyed as "Class.method". All collections keep source order.
    """

    language: str
    strategy: str
    imports: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    functions: Dict[str, str] = field(default_factory=dict)

    @property
    def is_structural(self) -> bool:
        return self.strategy == AnalysisStrategy.STRUCTURAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "strategy": self.strategy,
            "imports": list(self.imports),
            "exports": list(self.exports),
            "functions": dict(self.functions),
        }


def dedupe(values: List[str]) -> List[str]:
    """Drop repeated values, keeping first occurrences in order."""
    return list(dict.fromkeys(values))


class SourceAnalyzer(ABC):
    """Abstract base class for source analyzer strategies."""

    @abstractmethod
    def name(self) -> str:
        """Return a short identifier used in logs."""
        pass

    @abstractmethod
    def priority(self) -> int:
        """Return analyzer priority; higher runs first."""
        pass

    @abstractmethod
    def supports(self, extension: str) -> bool:
        """Whether this analyzer can handle files with the given extension.

        Args:
            extension: Lower-cased extension without the dot ("" for none).
        """
        pass

    @abstractmethod
    def analyze(self, source: str, extension: str) -> Optional[SourceOutline]:
        """Produce an outline of source.

        Returns:
            The outline, or None when this analyzer cannot handle the text.
            Analyzers MUST NOT raise for malformed input.
        """
        pass


class AnalyzerRegistry:
    """Priority-ordered set of source analyzers.

    Thread Safety:
    - Register all analyzers during initialization; analyze() only reads.
    """

    def __init__(self) -> None:
        self._analyzers: List[SourceAnalyzer] = []
        self._sorted: bool = True

    def register(self, analyzer: SourceAnalyzer) -> None:
        """Register an analyzer.

        Raises:
            TypeError: If analyzer is not a SourceAnalyzer instance.
        """
        if not isinstance(analyzer, SourceAnalyzer):
            raise TypeError(f"Analyzer must be a SourceAnalyzer instance, got {type(analyzer)}")

        self._analyzers.append(analyzer)
        self._sorted = False
        logger.debug(f"Registered analyzer '{analyzer.name()}' with priority {analyzer.priority()}")

    def get_analyzers(self) -> List[SourceAnalyzer]:
        """Get all registered analyzers, highest priority first."""
        if not self._sorted:
            self._analyzers.sort(key=lambda a: (-a.priority(), a.name()))
            self._sorted = True
        return self._analyzers

    def count(self) -> int:
        return len(self._analyzers)

    def analyze(self, source: str, extension: str = "") -> SourceOutline:
        """Outline source using the best analyzer that supports extension.

        Args:
            source: Source text.
            extension: Extension without the dot; "" when unknown.

        Returns:
            The first outline produced. An empty textual outline when no
            registered analyzer produces one.
        """
        extension = extension.lower().lstrip(".")
        for analyzer in self.get_analyzers():
            if not analyzer.supports(extension):
                continue
            outline = analyzer.analyze(source, extension)
            if outline is not None:
                return outline
            logger.debug(f"Analyzer '{analyzer.name()}' declined .{extension} source, falling back")

        return SourceOutline(language=extension, strategy=AnalysisStrategy.TEXTUAL)
