"""
Sectionizer Module - Split a markdown syllabus into heading-delimited sections.
===============================================================================

The syllabus is a loosely structured markdown file. It is split at
heading markers (one to six `#` followed by whitespace and text):

- each section's body runs from the end of its heading line to the next
  heading marker, or to the end of the document for the last section
- each section carries the lesson links found in its heading or body,
  de-duplicated in first-seen order

A document without heading markers yields no sections; callers treat
that as "no deterministic candidates".
"""

import re
from dataclasses import dataclass
from typing import Optional

from syllabus_assistant.shared.config import DEFAULT_LESSON_PATTERN
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Section
from syllabus_assistant.shared.utils import dedupe_preserve_order

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Sectionizer Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SectionizerConfig:
    """Patterns used to split the document and collect links."""

    heading_pattern: str = r"^(#{1,6})[ \t]+(\S.*?)[ \t]*$"
    lesson_pattern: str = DEFAULT_LESSON_PATTERN


# ─────────────────────────────────────────────────────────────────────────────
# Sectionizer Class
# ─────────────────────────────────────────────────────────────────────────────


class Sectionizer:
    """
    Splits markdown text into an ordered list of Section records.

    Example:
        >>> sectionizer = Sectionizer()
        >>> sections = sectionizer.split("## Due Dates\\nThe EBO is due May 2.")
        >>> sections[0].heading
        'Due Dates'
    """

    def __init__(self, config: Optional[SectionizerConfig] = None):
        self.config = config or SectionizerConfig()
        self._heading_re = re.compile(self.config.heading_pattern, re.MULTILINE)
        self._lesson_re = re.compile(self.config.lesson_pattern)

    @classmethod
    def from_settings(cls, settings) -> "Sectionizer":
        """Build a sectionizer using the configured lesson-link pattern."""
        return cls(SectionizerConfig(lesson_pattern=settings.links.lesson_pattern))

    def split(self, markdown: str) -> list[Section]:
        """
        Split a document into sections.

        Args:
            markdown: Raw document text

        Returns:
            Sections in document order (empty if there are no headings)
        """
        if not markdown:
            return []

        matches = list(self._heading_re.finditer(markdown))
        sections: list[Section] = []

        for i, match in enumerate(matches):
            body_start = match.end()
            body_end = matches[i + 1].start() if i + 1 < len(matches) else len(markdown)

            heading = match.group(2).strip()
            body = markdown[body_start:body_end]

            sections.append(
                Section(
                    heading=heading,
                    body=body,
                    level=len(match.group(1)),
                    start=match.start(),
                    end=body_end,
                    reference_links=tuple(self.extract_links(heading, body)),
                )
            )

        logger.debug(f"Split document into {len(sections)} sections")
        return sections

    def extract_links(self, *texts: str) -> list[str]:
        """Collect lesson links from the given texts, first occurrence first."""
        found: list[str] = []
        for text in texts:
            found.extend(m.group(0) for m in self._lesson_re.finditer(text))
        return dedupe_preserve_order(found)


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def split_sections(markdown: str, lesson_pattern: Optional[str] = None) -> list[Section]:
    """
    Split a document into sections.

    Convenience function.

    Args:
        markdown: Raw document text
        lesson_pattern: Optional override for the lesson-link pattern

    Returns:
        List of Section records
    """
    config = SectionizerConfig(lesson_pattern=lesson_pattern or DEFAULT_LESSON_PATTERN)
    return Sectionizer(config).split(markdown)


def render_sections(sections: list[Section]) -> str:
    """Render sections back to markdown, in order."""
    return "".join(section.to_markdown() for section in sections).strip()
