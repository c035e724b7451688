# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Detection of project tooling from configuration files in the project root.

Inspects only the root directory (no walk):
- package.json: JavaScript frameworks, embedded ESLint/Prettier config
- pyproject.toml: [tool.*] sections and Python framework dependencies
- setup.cfg / tox.ini: [mypy] and [flake8] sections
- Lockfiles: package manager

A missing file is simply absent; a malformed file is logged and ignored.
"""

import configparser
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Dict, List

from .models import ProjectConfigFlags

logger = logging.getLogger(__name__)

# Python 3.11+ has tomllib built-in, earlier versions need tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

STRICT_TYPING_FILES = ("tsconfig.json", "mypy.ini", ".mypy.ini", "pyrightconfig.json")
LINT_CONFIG_FILES = (
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
    ".flake8",
    "ruff.toml",
    ".ruff.toml",
    ".pylintrc",
    "pylintrc",
)
FORMATTER_CONFIG_FILES = (
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.js",
    ".prettierrc.cjs",
    ".prettierrc.yml",
    ".prettierrc.yaml",
    "prettier.config.js",
    "prettier.config.cjs",
    "prettier.config.mjs",
)

# First lockfile found wins
LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
    ("Pipfile.lock", "pipenv"),
    ("requirements.txt", "pip"),
)

JS_FRAMEWORKS = (
    (("react",), "React"),
    (("vue",), "Vue"),
    (("@angular/core", "angular"), "Angular"),
    (("express",), "Express"),
    (("@nestjs/core", "nestjs"), "NestJS"),
    (("next",), "Next.js"),
)
PYTHON_FRAMEWORKS = (
    ("django", "Django"),
    ("flask", "Flask"),
    ("fastapi", "FastAPI"),
)

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._\-]*)")


def _requirement_name(requirement: str) -> str:
    match = _REQUIREMENT_NAME.match(requirement)
    return match.group(1).lower().replace("_", "-") if match else ""


class ProjectConfigDetector:
    """Derives ProjectConfigFlags from files in a project root."""

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root)

    def _exists(self, name: str) -> bool:
        return (self.project_root / name).is_file()

    def _load_package_json(self) -> Dict[str, Any]:
        path = self.project_root / "package.json"
        if not path.is_file():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _load_pyproject(self) -> Dict[str, Any]:
        path = self.project_root / "pyproject.toml"
        if not path.is_file():
            return {}
        try:
            with open(path, "rb") as f:
                return tomllib.load(f)
        except (OSError, ValueError) as e:  # TOMLDecodeError and UnicodeDecodeError
            logger.warning(f"Could not read {path}: {e}")
            return {}

    def _load_ini_sections(self) -> List[str]:
        sections: List[str] = []
        for name in ("setup.cfg", "tox.ini"):
            path = self.project_root / name
            if not path.is_file():
                continue
            parser = configparser.ConfigParser()
            try:
                parser.read(path, encoding="utf-8")
            except (OSError, UnicodeDecodeError, configparser.Error) as e:
                logger.warning(f"Could not read {path}: {e}")
                continue
            sections.extend(parser.sections())
        return sections

    def detect(self) -> ProjectConfigFlags:
        """Inspect the project root.

        Returns:
            Flags describing typing, lint, formatter, package manager and frameworks.
        """
        package_json = self._load_package_json()
        pyproject = self._load_pyproject()
        ini_sections = self._load_ini_sections()
        tool = pyproject.get("tool", {}) if isinstance(pyproject.get("tool"), dict) else {}

        has_strict_typing = (
            any(self._exists(name) for name in STRICT_TYPING_FILES)
            or "mypy" in tool
            or "pyright" in tool
            or "mypy" in ini_sections
        )
        has_lint_config = (
            any(self._exists(name) for name in LINT_CONFIG_FILES)
            or "eslintConfig" in package_json
            or any(name in tool for name in ("ruff", "pylint", "flake8"))
            or "flake8" in ini_sections
        )
        ruff_config = tool.get("ruff")
        has_formatter_config = (
            any(self._exists(name) for name in FORMATTER_CONFIG_FILES)
            or "prettier" in package_json
            or "black" in tool
            or (isinstance(ruff_config, dict) and "format" in ruff_config)
        )

        package_manager = "none"
        for lockfile, manager in LOCKFILES:
            if self._exists(lockfile):
                package_manager = manager
                break

        frameworks = self._detect_js_frameworks(package_json)
        for framework in self._detect_python_frameworks(pyproject):
            if framework not in frameworks:
                frameworks.append(framework)

        flags = ProjectConfigFlags(
            has_strict_typing=has_strict_typing,
            has_lint_config=has_lint_config,
            has_formatter_config=has_formatter_config,
            package_manager=package_manager,
            frameworks=tuple(frameworks),
        )
        logger.debug(f"Project config for {self.project_root}: {flags.to_dict()}")
        return flags

    def _detect_js_frameworks(self, package_json: Dict[str, Any]) -> List[str]:
        dependencies: Dict[str, Any] = {}
        for section in ("dependencies", "devDependencies"):
            values = package_json.get(section)
            if isinstance(values, dict):
                dependencies.update(values)

        return [
            framework
            for packages, framework in JS_FRAMEWORKS
            if any(package in dependencies for package in packages)
        ]

    def _detect_python_frameworks(self, pyproject: Dict[str, Any]) -> List[str]:
        names = set()

        project = pyproject.get("project", {})
        if isinstance(project, dict):
            for requirement in project.get("dependencies", []) or []:
                if isinstance(requirement, str):
                    names.add(_requirement_name(requirement))

        tool = pyproject.get("tool", {})
        poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
        if isinstance(poetry, dict) and isinstance(poetry.get("dependencies"), dict):
            names.update(name.lower() for name in poetry["dependencies"])

        requirements = self.project_root / "requirements.txt"
        if requirements.is_file():
            try:
                lines = requirements.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read {requirements}: {e}")
                lines = []
            for line in lines:
                if not line.lstrip().startswith(("#", "-")):
                    names.add(_requirement_name(line))

        return [framework for package, framework in PYTHON_FRAMEWORKS if package in names]
