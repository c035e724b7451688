# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Plain-text rendering of context bundles and diff analyses.

format_bundle() produces the project context block prepended to a
generation prompt. Sections are emitted in a fixed order; similar-file
previews come last and are dropped from the end when the rendered text
would exceed the token limit.

format_diff() renders a DiffAnalysis as a unified-style preview.
"""

import logging
from typing import List, Optional, Sequence

import tiktoken

from .models import (
    DiffAnalysis,
    DiffLineType,
    ExtractedFileReference,
    ProjectContextBundle,
)

logger = logging.getLogger(__name__)

# Characters of each similar file shown in the prompt context
SIMILAR_FILE_PREVIEW_CHARS = 500

_LINE_PREFIX = {
    DiffLineType.ADD: "+",
    DiffLineType.REMOVE: "-",
    DiffLineType.UNCHANGED: " ",
}


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


class TokenCounter:
    """Counts tokens with tiktoken's cl100k_base encoding.

    The encoder is created lazily because the first call may download
    encoding data. When it cannot be created, a word-based estimate is used.
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name
        self._encoder: Optional[tiktoken.Encoding] = None
        self._unavailable = False

    def _get_encoder(self) -> Optional[tiktoken.Encoding]:
        if self._encoder is None and not self._unavailable:
            try:
                self._encoder = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                logger.warning(f"Failed to initialize tiktoken encoder: {e}")
                self._unavailable = True
        return self._encoder

    def count(self, text: str) -> int:
        """Number of tokens in text (approximate if tiktoken is unavailable)."""
        encoder = self._get_encoder()
        if encoder is not None:
            return len(encoder.encode(text))

        if not text:
            return 0
        # Rough approximation: ~1.3 tokens per word for code
        return int(len(text.split()) * 1.3)


class ContextFormatter:
    """Renders bundles for prompts and diff analyses for previews."""

    def __init__(self, token_counter: Optional[TokenCounter] = None):
        self.token_counter = token_counter or TokenCounter()

    def _header_sections(
        self,
        bundle: ProjectContextBundle,
        references: Sequence[ExtractedFileReference],
    ) -> List[str]:
        lines: List[str] = ["=== PROJECT CONTEXT ===", ""]

        if references:
            lines.append("Files requested by the user (edit or create exactly these):")
            for reference in references:
                status = "exists" if reference.exists else "does not exist (create it)"
                lines.append(f"- {reference.original_path} -> {reference.normalized_path}")
                lines.append(f"  Status: {status}")
            lines.append("")

        if bundle.related_files:
            lines.append("Related files:")
            for record in bundle.related_files:
                marker = " (new file)" if record.is_new else ""
                lines.append(f"- {record.path} [{record.language}]{marker}")
            lines.append("")

        config = bundle.project_config
        lines.append("Project configuration:")
        lines.append(f"- Strict typing: {_yes_no(config.has_strict_typing)}")
        lines.append(f"- Lint config: {_yes_no(config.has_lint_config)}")
        lines.append(f"- Formatter config: {_yes_no(config.has_formatter_config)}")
        lines.append(f"- Package manager: {config.package_manager}")
        if config.frameworks:
            lines.append(f"- Frameworks: {', '.join(config.frameworks)}")
        lines.append("")

        style = bundle.style
        lines.append("Code style (follow strictly):")
        lines.append(f"- Naming: {style.naming_convention}")
        lines.append(f"- Indentation: {style.indentation} ({style.indent_size})")
        lines.append(f"- Quotes: {style.quotes}")
        lines.append(f"- Semicolons: {_yes_no(style.semicolons)}")
        lines.append(f"- Async: {style.async_style}")

        if bundle.common_imports:
            lines.append("")
            lines.append("Common imports (use when appropriate):")
            lines.extend(f"- {module}" for module in bundle.common_imports)

        if bundle.common_patterns:
            lines.append("")
            lines.append("Common patterns (follow these):")
            lines.extend(f"- {pattern}" for pattern in bundle.common_patterns)

        structure = bundle.structure
        lines.append("")
        lines.append("Project structure:")
        lines.append(f"- Total files: {structure.total_files}")
        extensions = [ext or "(none)" for ext in structure.files_by_extension]
        lines.append(f"- File types: {', '.join(extensions)}")
        return lines

    def _similar_file_section(self, bundle: ProjectContextBundle, index: int) -> List[str]:
        record = bundle.similar_files[index]
        preview = record.content[:SIMILAR_FILE_PREVIEW_CHARS]
        if len(record.content) > SIMILAR_FILE_PREVIEW_CHARS:
            preview += "..."
        return [
            "",
            f"File: {record.path}",
            f"Imports: {', '.join(record.imports) or 'none'}",
            f"Exports: {', '.join(record.exports) or 'none'}",
            f"```{record.language}",
            preview,
            "```",
        ]

    def format_bundle(
        self,
        bundle: ProjectContextBundle,
        references: Optional[Sequence[ExtractedFileReference]] = None,
        token_limit: Optional[int] = None,
    ) -> str:
        """Render a bundle as prompt context.

        Args:
            bundle: Assembled project context.
            references: File references extracted from the intent, if any.
            token_limit: Maximum tokens for the rendered text. Similar-file
                previews are dropped from the end until the text fits. The
                other sections are always kept.

        Returns:
            The rendered context block.
        """
        lines = self._header_sections(bundle, references or [])
        footer = ["", "=== END OF PROJECT CONTEXT ==="]

        sections = [self._similar_file_section(bundle, i) for i in range(len(bundle.similar_files))]
        while True:
            body = list(lines)
            if sections:
                body.append("")
                body.append("Similar files (reference only):")
                for section in sections:
                    body.extend(section)
            text = "\n".join(body + footer) + "\n"

            if token_limit is None or not sections:
                return text
            if self.token_counter.count(text) <= token_limit:
                return text
            dropped = sections.pop()
            logger.debug(f"Dropped similar file preview {dropped[1]!r} to fit token limit")

    def format_diff(self, analysis: DiffAnalysis, path: Optional[str] = None) -> str:
        """Render a diff analysis as a plain-text preview."""
        lines: List[str] = []
        if path:
            lines.append(f"--- {path}")
        lines.append(f"Summary: {analysis.summary}")

        if analysis.semantic_changes:
            lines.append("")
            lines.append("Semantic changes:")
            for change in analysis.semantic_changes:
                lines.append(f"- [{change.impact}] {change.description}")

        if analysis.breaking_changes:
            lines.append("")
            lines.append("Breaking changes:")
            for breaking in analysis.breaking_changes:
                lines.append(f"- {breaking.description}")
                if breaking.suggestion:
                    lines.append(f"  Suggestion: {breaking.suggestion}")

        for hunk in analysis.hunks:
            lines.append("")
            lines.append(
                f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@"
            )
            for line in hunk.lines:
                lines.append(f"{_LINE_PREFIX.get(line.line_type, ' ')}{line.content}")

        return "\n".join(lines) + "\n"
