# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Regex-based analyzer used when no structural parser applies.

Handles the JavaScript/TypeScript family (and, as the generic default,
any other extension) plus a Python pattern set for files the AST
analyzer could not parse. Results are heuristic: matches inside strings
or comments are not filtered.
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from .base import AnalysisStrategy, SourceAnalyzer, SourceOutline, dedupe
from .python_analyzer import PYTHON_EXTENSIONS

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = frozenset(
    {"js", "jsx", "ts", "tsx", "mjs", "cjs", "mts", "cts", "vue", "svelte"}
)

# JavaScript / TypeScript
_JS_IMPORT_FROM = re.compile(r"\bimport\s+(?:type\s+)?[\w*{}\s,$]+?\s+from\s*['\"]([^'\"]+)['\"]")
_JS_SIDE_EFFECT_IMPORT = re.compile(r"\bimport\s*['\"]([^'\"]+)['\"]")
_JS_REQUIRE = re.compile(r"\brequire\(\s*['\"]([^'\"]+)['\"]\s*\)")
_JS_EXPORT_DECLARATION = re.compile(
    r"\bexport\s+(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
    r"(?:class|function\s*\*?|const|let|var|interface|type|enum)\s+(\w+)"
)
_JS_EXPORT_LIST = re.compile(r"\bexport\s*\{([^}]*)\}")
_JS_FUNCTION_DECLARATION = re.compile(r"\b(?:async\s+)?function\s*\*?\s*(\w+)\s*\(([^)]*)\)")
_JS_FUNCTION_BINDING = re.compile(
    r"\b(?:const|let|var)\s+(\w+)\s*(?::\s*[^=;]+)?=\s*(?:async\s+)?"
    r"(?:function\b\s*\*?\s*\w*\s*)?\(([^)]*)\)\s*(?::\s*[^={;]+)?(?:=>|\{)"
)
_JS_SINGLE_PARAM_ARROW = re.compile(r"\b(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?(\w+)\s*=>")

# Python
_PY_IMPORT = re.compile(r"^[ \t]*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)", re.MULTILINE)
_PY_FROM_IMPORT = re.compile(r"^[ \t]*from\s+(\.*[\w.]*)\s+import\b", re.MULTILINE)
_PY_FUNCTION = re.compile(r"^[ \t]*(?:async\s+)?def\s+(\w+)\s*\(([^)]*)\)", re.MULTILINE)
_PY_TOP_LEVEL_DEFINITION = re.compile(r"^(?:async\s+)?(?:def|class)\s+([A-Za-z]\w*)", re.MULTILINE)


def normalize_params(params: str) -> str:
    """Collapse whitespace in a parameter list so formatting alone never differs."""
    return re.sub(r"\s+", " ", params.strip())


def _ordered_matches(source: str, patterns: List[Pattern[str]]) -> List[str]:
    found: List[Tuple[int, str]] = []
    for pattern in patterns:
        for match in pattern.finditer(source):
            found.append((match.start(), match.group(1)))
    found.sort(key=lambda item: item[0])
    return dedupe([value for _, value in found])


class TextualAnalyzer(SourceAnalyzer):
    """Fallback analyzer that supports every extension."""

    def name(self) -> str:
        return "textual"

    def priority(self) -> int:
        return 0

    def supports(self, extension: str) -> bool:
        return True

    def analyze(self, source: str, extension: str) -> Optional[SourceOutline]:
        if extension in PYTHON_EXTENSIONS:
            return self._analyze_python(source)
        return self._analyze_script(source, extension)

    def _analyze_script(self, source: str, extension: str) -> SourceOutline:
        imports = _ordered_matches(source, [_JS_IMPORT_FROM, _JS_SIDE_EFFECT_IMPORT, _JS_REQUIRE])

        exports: List[Tuple[int, str]] = [
            (match.start(), match.group(1)) for match in _JS_EXPORT_DECLARATION.finditer(source)
        ]
        for match in _JS_EXPORT_LIST.finditer(source):
            for item in match.group(1).split(","):
                # "a as b" exports b
                parts = item.split()
                if parts:
                    exports.append((match.start(), parts[-1]))
        exports.sort(key=lambda item: item[0])

        found: List[Tuple[int, str, str]] = []
        for pattern in (_JS_FUNCTION_DECLARATION, _JS_FUNCTION_BINDING, _JS_SINGLE_PARAM_ARROW):
            for match in pattern.finditer(source):
                found.append((match.start(), match.group(1), normalize_params(match.group(2))))
        found.sort(key=lambda item: item[0])
        functions: Dict[str, str] = {}
        for _, name, params in found:
            functions.setdefault(name, params)

        return SourceOutline(
            language=extension or "javascript",
            strategy=AnalysisStrategy.TEXTUAL,
            imports=imports,
            exports=dedupe([name for _, name in exports]),
            functions=functions,
        )

    def _analyze_python(self, source: str) -> SourceOutline:
        found: List[Tuple[int, str]] = []
        for match in _PY_IMPORT.finditer(source):
            for module in match.group(1).split(","):
                found.append((match.start(), module.strip()))
        for match in _PY_FROM_IMPORT.finditer(source):
            found.append((match.start(), match.group(1)))
        found.sort(key=lambda item: item[0])

        functions: Dict[str, str] = {}
        for match in _PY_FUNCTION.finditer(source):
            functions.setdefault(match.group(1), normalize_params(match.group(2)))

        return SourceOutline(
            language="python",
            strategy=AnalysisStrategy.TEXTUAL,
            imports=dedupe([module for _, module in found]),
            exports=_ordered_matches(source, [_PY_TOP_LEVEL_DEFINITION]),
            functions=functions,
        )
