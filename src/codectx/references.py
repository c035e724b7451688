# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Extraction of file references from free-form intent text.

Five patterns run in a fixed order over the text:
1. Windows absolute paths (C:\\src\\app.ts, C:/src/app.ts)
2. POSIX absolute paths (/home/user/app.ts)
3. Backtick-quoted paths (`src/app.ts`), delimiters stripped
4. Relative paths containing at least one "/" (src/app.ts, ./lib/x.py)
5. Bare file names with an extension (app.ts)

Each match is blanked out before the next pattern runs, so a path is
reported once and the tail of a longer path is never picked up as a
separate reference. Text inside backticks is only seen by pattern 3.
"""

import logging
import ntpath
import os
import posixpath
import re
from pathlib import Path
from typing import List, Optional, Pattern, Set

from .models import ExtractedFileReference
from .scanner import FileCorpusScanner

logger = logging.getLogger(__name__)

# One path segment; no whitespace, quotes or separators
_SEGMENT = r"[\w.\-@+]+"
_EXTENSION = r"\.[A-Za-z][A-Za-z0-9]{0,9}"
# A reference may be followed by sentence punctuation but not by more path text
_END = r"(?![\w\-@+/\\])"

WINDOWS_PATH_PATTERN = re.compile(
    rf"(?<![\w.\-/\\])[A-Za-z]:[\\/](?:{_SEGMENT}[\\/])*{_SEGMENT}{_EXTENSION}{_END}"
)
POSIX_PATH_PATTERN = re.compile(rf"(?<![\w.\-~/\\:])/(?:{_SEGMENT}/)*{_SEGMENT}{_EXTENSION}{_END}")
BACKTICK_PATTERN = re.compile(r"`([^`\n]*?[^`\s]\.[A-Za-z][A-Za-z0-9]{0,9})`")
RELATIVE_PATH_PATTERN = re.compile(
    rf"(?<![\w.\-~/\\:@])(?:{_SEGMENT}/)+{_SEGMENT}{_EXTENSION}{_END}"
)
BARE_FILENAME_PATTERN = re.compile(rf"(?<![\w.\-~/\\:@])[\w\-]+(?:\.[\w\-]+)*{_EXTENSION}{_END}")

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")

# Abbreviations that look like file names
_NOT_FILE_NAMES = {"e.g", "i.e", "a.k.a"}

EDIT_KEYWORDS = (
    "edit",
    "modify",
    "update",
    "improve",
    "fix",
    "change",
    "refactor",
    "rewrite",
    "rename",
)

# Directories searched for a referenced file that does not resolve directly
SEARCH_DIRS = ("", "src", "lib", "app")


def _mask(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


class FileReferenceExtractor:
    """Finds and resolves file paths mentioned in intent text."""

    def __init__(
        self,
        project_root: Path,
        scanner: Optional[FileCorpusScanner] = None,
        search_max_depth: int = 2,
    ):
        self.project_root = Path(project_root)
        self.scanner = scanner or FileCorpusScanner()
        self.search_max_depth = search_max_depth

    def _find_matches(self, text: str) -> List[str]:
        """Return raw path strings in pattern order, then position order."""
        matches: List[str] = []
        remaining = text

        def collect(pattern: Pattern[str], group: int = 0) -> None:
            nonlocal remaining
            masked = remaining
            for match in pattern.finditer(remaining):
                candidate = match.group(group).strip()
                if candidate.lower() not in _NOT_FILE_NAMES:
                    matches.append(candidate)
                masked = _mask(masked, match.start(), match.end())
            remaining = masked

        # Backtick spans are claimed first so the other patterns never see them,
        # but their matches are reported in pattern order
        backtick_matches: List[str] = []
        for match in BACKTICK_PATTERN.finditer(remaining):
            backtick_matches.append(match.group(1).strip())
        for match in re.finditer(r"`[^`\n]*`", text):
            remaining = _mask(remaining, match.start(), match.end())

        collect(WINDOWS_PATH_PATTERN)
        collect(POSIX_PATH_PATTERN)
        matches.extend(backtick_matches)
        collect(RELATIVE_PATH_PATTERN)
        collect(BARE_FILENAME_PATTERN)
        return matches

    def _resolve(self, raw_path: str) -> ExtractedFileReference:
        if _WINDOWS_ABSOLUTE.match(raw_path):
            normalized = ntpath.normpath(raw_path)
            file_name = ntpath.basename(normalized)
        elif raw_path.startswith("/"):
            normalized = posixpath.normpath(raw_path)
            file_name = posixpath.basename(normalized)
        else:
            normalized = os.path.normpath(os.path.join(str(self.project_root), raw_path))
            file_name = os.path.basename(normalized)

        exists = os.path.isfile(normalized)
        if not exists:
            found = self._search_project(file_name)
            if found is not None:
                logger.debug(f"Resolved reference {raw_path} to {found}")
                normalized = str(found)
                exists = True

        return ExtractedFileReference(
            original_path=raw_path,
            normalized_path=normalized,
            exists=exists,
            extension=os.path.splitext(file_name)[1][1:],
            file_name=file_name,
        )

    def _search_project(self, file_name: str) -> Optional[Path]:
        for subdir in SEARCH_DIRS:
            base = self.project_root / subdir if subdir else self.project_root
            found = self.scanner.find_by_name(base, file_name, self.search_max_depth)
            if found is not None:
                return found
        return None

    def extract_file_paths(self, text: str) -> List[ExtractedFileReference]:
        """Extract every file reference in text.

        Args:
            text: Free-form intent text.

        Returns:
            References in first-seen order, deduplicated by resolved path.
            References that cannot be resolved are returned with exists=False.
        """
        references: List[ExtractedFileReference] = []
        seen: Set[str] = set()
        for raw_path in self._find_matches(text):
            if raw_path in seen:
                continue
            seen.add(raw_path)
            reference = self._resolve(raw_path)
            if reference.normalized_path in seen:
                continue
            seen.add(reference.normalized_path)
            references.append(reference)
        return references

    def extract_primary_file(self, text: str) -> Optional[ExtractedFileReference]:
        """Pick the file the user most likely wants to work on.

        Preference: first existing file, then first absolute path, then first mention.
        """
        references = self.extract_file_paths(text)
        if not references:
            return None

        for reference in references:
            if reference.exists:
                return reference
        for reference in references:
            if reference.is_absolute:
                return reference
        return references[0]

    def is_editing_existing_file(self, text: str) -> bool:
        """Whether the intent asks to change an existing file."""
        lowered = text.lower()
        return any(re.search(rf"\b{keyword}", lowered) for keyword in EDIT_KEYWORDS)

    def file_not_found_message(self, reference: ExtractedFileReference) -> str:
        """Human-readable explanation for a reference that did not resolve."""
        return (
            "File not found\n"
            "\n"
            f"Requested file: {reference.original_path}\n"
            f"Resolved path: {reference.normalized_path}\n"
            "\n"
            "Suggestions:\n"
            "1. Check that the path is spelled correctly\n"
            "2. Use an absolute path, e.g. /home/user/project/src/file.ext\n"
            "3. Use a path relative to the project root, e.g. src/file.ext\n"
            "4. Check that the file exists in the project\n"
            "\n"
            f'To create a new file instead, ask to "create {reference.file_name}".'
        )
