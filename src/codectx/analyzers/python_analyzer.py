# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structural analyzer for Python source using the standard ast module."""

import ast
import logging
from typing import Dict, List, Optional, Tuple

from .base import AnalysisStrategy, SourceAnalyzer, SourceOutline, dedupe

logger = logging.getLogger(__name__)

PYTHON_EXTENSIONS = frozenset({"py", "pyi"})

_FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)


class PythonStructuralAnalyzer(SourceAnalyzer):
    """Outlines Python files from their AST.

    - imports: module names in source order; relative imports keep their dots
      ("from . import x" yields ".", "from ..pkg import y" yields "..pkg")
    - exports: the literal __all__ when declared, otherwise public
      top-level functions, classes and assigned names
    - functions: top-level functions and "Class.method" for methods of
      top-level classes, mapped to their unparsed parameter lists
    """

    def name(self) -> str:
        return "python_ast"

    def priority(self) -> int:
        return 100

    def supports(self, extension: str) -> bool:
        return extension in PYTHON_EXTENSIONS

    def analyze(self, source: str, extension: str) -> Optional[SourceOutline]:
        try:
            module = ast.parse(source, mode="exec")
        except SyntaxError as e:
            logger.warning(f"Syntax error at line {e.lineno}: {e.msg}, using textual analysis")
            return None
        except ValueError as e:
            # Null bytes in source
            logger.warning(f"Cannot parse source: {e}, using textual analysis")
            return None

        return SourceOutline(
            language="python",
            strategy=AnalysisStrategy.STRUCTURAL,
            imports=self._extract_imports(module),
            exports=self._extract_exports(module),
            functions=self._extract_functions(module),
        )

    def _extract_imports(self, module: ast.Module) -> List[str]:
        found: List[Tuple[int, int, str]] = []
        for node in ast.walk(module):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    found.append((node.lineno, node.col_offset, alias.name))
            elif isinstance(node, ast.ImportFrom):
                found.append((node.lineno, node.col_offset, "." * node.level + (node.module or "")))
        found.sort(key=lambda item: (item[0], item[1]))
        return dedupe([name for _, _, name in found])

    def _declared_all(self, module: ast.Module) -> Optional[List[str]]:
        for node in module.body:
            if not isinstance(node, ast.Assign):
                continue
            if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets):
                continue
            if isinstance(node.value, (ast.List, ast.Tuple)):
                return [
                    element.value
                    for element in node.value.elts
                    if isinstance(element, ast.Constant) and isinstance(element.value, str)
                ]
        return None

    def _extract_exports(self, module: ast.Module) -> List[str]:
        declared = self._declared_all(module)
        if declared is not None:
            return dedupe(declared)

        names: List[str] = []
        for node in module.body:
            if isinstance(node, (*_FunctionNode, ast.ClassDef)):
                names.append(node.name)
            elif isinstance(node, ast.Assign):
                for target in node.targets:
                    if isinstance(target, ast.Name):
                        names.append(target.id)
            elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
                names.append(node.target.id)
        return dedupe([name for name in names if not name.startswith("_")])

    def _extract_functions(self, module: ast.Module) -> Dict[str, str]:
        functions: Dict[str, str] = {}
        for node in module.body:
            if isinstance(node, _FunctionNode):
                functions.setdefault(node.name, ast.unparse(node.args))
            elif isinstance(node, ast.ClassDef):
                for member in node.body:
                    if isinstance(member, _FunctionNode):
                        functions.setdefault(f"{node.name}.{member.name}", ast.unparse(member.args))
        return functions
