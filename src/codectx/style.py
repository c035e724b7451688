# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Coding-style inference from sample file contents.

Every decision is a majority vote over raw totals aggregated across all
sample files; a tie goes to the second option of each pair (tabs, double
quotes, no semicolons, promises, snake_case).
"""

import logging
import re
from typing import Iterable, List

from .models import (
    AsyncStyle,
    FileRecord,
    Indentation,
    NamingConvention,
    QuoteStyle,
    StyleProfile,
)

logger = logging.getLogger(__name__)

_SPACE_INDENT = re.compile(r"\n  ")
_TAB_INDENT = re.compile(r"\n\t")
_LEADING_SPACES = re.compile(r"^( +)\S", re.MULTILINE)
_CAMEL_CASE = re.compile(r"[a-z][A-Z]")
_SNAKE_CASE = re.compile(r"[a-z]_[a-z]")

# A file uses semicolons when it has more than this many per line
SEMICOLON_RATIO = 0.3


class StyleDetector:
    """Infers a StyleProfile from file records."""

    def detect(self, records: Iterable[FileRecord]) -> StyleProfile:
        """Infer the dominant coding style.

        Args:
            records: Sample files. Records without content are ignored.

        Returns:
            The inferred profile, or the default profile when no record
            has content.
        """
        contents: List[str] = [record.content for record in records if record.content]
        if not contents:
            return StyleProfile()

        space_indents = 0
        tab_indents = 0
        single_quotes = 0
        double_quotes = 0
        semicolon_files = 0
        plain_files = 0
        async_files = 0
        promise_files = 0
        camel_case = 0
        snake_case = 0
        indent_by_four = 0
        indent_by_two = 0

        for content in contents:
            space_indents += len(_SPACE_INDENT.findall(content))
            tab_indents += len(_TAB_INDENT.findall(content))

            single_quotes += content.count("'")
            double_quotes += content.count('"')

            lines = content.count("\n") + 1
            if content.count(";") > lines * SEMICOLON_RATIO:
                semicolon_files += 1
            else:
                plain_files += 1

            if "async " in content or "await " in content:
                async_files += 1
            if ".then(" in content or ".catch(" in content:
                promise_files += 1

            camel_case += len(_CAMEL_CASE.findall(content))
            snake_case += len(_SNAKE_CASE.findall(content))

            for width in _LEADING_SPACES.findall(content):
                if len(width) % 4 == 0:
                    indent_by_four += 1
                else:
                    indent_by_two += 1

        profile = StyleProfile(
            naming_convention=(
                NamingConvention.CAMEL_CASE
                if camel_case > snake_case
                else NamingConvention.SNAKE_CASE
            ),
            indentation=Indentation.SPACES if space_indents > tab_indents else Indentation.TABS,
            indent_size=4 if indent_by_four > indent_by_two else 2,
            quotes=QuoteStyle.SINGLE if single_quotes > double_quotes else QuoteStyle.DOUBLE,
            semicolons=semicolon_files > plain_files,
            async_style=(
                AsyncStyle.ASYNC_AWAIT if async_files > promise_files else AsyncStyle.PROMISES
            ),
        )
        logger.debug(f"Detected style from {len(contents)} files: {profile.to_dict()}")
        return profile
