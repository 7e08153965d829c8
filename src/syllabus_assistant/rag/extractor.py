"""
Extractor Module - Deterministic due/penalty/extension block extraction.
========================================================================

Answers "when is it due / what is the late penalty / can I get an
extension" questions with verbatim syllabus text instead of a model call.
Pure line-pattern heuristics, no grammar and no LLM:

1. Find the first non-blank line that is a genuine due statement: it has
   a due/deadline keyword AND a date-ish token (weekday, month, day
   number, year, or HH:MM am/pm). "Due Dates" headings fail the second
   test and are skipped.
2. Capture the paragraph from that line down to the next blank line.
3. If the paragraph cap cut it short, keep taking the following non-blank
   lines while they carry penalty or submission keywords or more dates,
   up to a fixed number of lines. A blank line always ends the block.
4. Append any extension/accommodation paragraph found elsewhere in the
   section (or in related extension sections) not already substring-
   contained in the block. Section heading lines are never appended.
5. Turn superscript markup into inline text and drop trailing blanks.

For the same input text the output is always identical.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from syllabus_assistant.ingestion.cleaner import TextCleaner
from syllabus_assistant.rag.selector import EXTENSION_PATTERN, SectionSelector
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, ExtractedBlock, Section

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Patterns
# ─────────────────────────────────────────────────────────────────────────────


LINE_SPLIT = re.compile(r"\r?\n")

DUE_KEYWORD = re.compile(r"\b(?:due|deadlines?)\b", re.IGNORECASE)

DATEISH = re.compile(
    r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b"
    r"|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec|january|february"
    r"|march|april|june|july|august|september|october|november|december)\b"
    r"|\b\d{1,2}(?:st|nd|rd|th)?\b"
    r"|\b\d{4}\b"
    r"|\b\d{1,2}:\d{2}\s*(?:am|pm)\b",
    re.IGNORECASE,
)

PENALTY = re.compile(
    r"\b(?:late|lateness|penalt(?:y|ies)|deduct(?:ed|ion|ions)?|lose|loses|zero"
    r"|grace|cut-?off|accepted|per\s+day|window"
    r"|submit(?:s|ted|ting)?|submissions?)\b",
    re.IGNORECASE,
)

HEADING_LINE = re.compile(r"^\s{0,3}#{1,6}\s")


# ─────────────────────────────────────────────────────────────────────────────
# Extractor Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExtractorConfig:
    """Size limits for an extracted block."""

    max_paragraph_lines: int = 12
    max_continuation_lines: int = 8


# ─────────────────────────────────────────────────────────────────────────────
# Extractor Class
# ─────────────────────────────────────────────────────────────────────────────


class DueBlockExtractor:
    """
    Locates the verbatim due/penalty/extension block inside section text.

    Example:
        >>> extractor = DueBlockExtractor()
        >>> extractor.extract("Essay Due Dates\\n\\nThe essay is due Friday, March 14th.")
        'The essay is due Friday, March 14th.'
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        cleaner: Optional[TextCleaner] = None,
        selector: Optional[SectionSelector] = None,
    ):
        self.config = config or ExtractorConfig()
        self.cleaner = cleaner or TextCleaner()
        self.selector = selector or SectionSelector()

    @classmethod
    def from_settings(
        cls, settings, selector: Optional[SectionSelector] = None
    ) -> "DueBlockExtractor":
        return cls(
            ExtractorConfig(
                max_paragraph_lines=settings.extraction.max_paragraph_lines,
                max_continuation_lines=settings.extraction.max_continuation_lines,
            ),
            selector=selector,
        )

    # Line predicates

    @staticmethod
    def looks_like_due_line(line: str) -> bool:
        """A due/deadline keyword together with an actual date or time."""
        return bool(DUE_KEYWORD.search(line)) and bool(DATEISH.search(line))

    @staticmethod
    def is_continuation_line(line: str) -> bool:
        return bool(PENALTY.search(line)) or bool(DATEISH.search(line))

    # Block assembly

    def _find_due_line(self, lines: list[str]) -> Optional[int]:
        for i, line in enumerate(lines):
            stripped = line.strip()
            if stripped and self.looks_like_due_line(stripped):
                return i
        return None

    def _capture_paragraph(self, lines: list[str], start: int) -> tuple[list[str], int]:
        """The due line and the non-blank lines under it; returns the next index."""
        block = [lines[start].strip()]
        j = start + 1
        while (
            j < len(lines)
            and lines[j].strip()
            and len(block) < self.config.max_paragraph_lines
        ):
            block.append(lines[j].rstrip())
            j += 1
        return block, j

    def _capture_continuation(self, lines: list[str], start: int) -> list[str]:
        """Penalty/submission/date lines directly following a capped paragraph."""
        extra: list[str] = []
        for raw in lines[start:]:
            if len(extra) >= self.config.max_continuation_lines:
                break
            if not raw.strip() or HEADING_LINE.match(raw):
                break
            if not self.is_continuation_line(raw):
                break
            extra.append(raw.rstrip())
        return extra

    @staticmethod
    def _paragraphs(text: str, headings: frozenset[str] = frozenset()) -> list[list[str]]:
        """Maximal runs of non-blank lines; heading lines act as separators."""
        paragraphs: list[list[str]] = []
        current: list[str] = []
        for raw in LINE_SPLIT.split(text):
            stripped = raw.strip()
            if stripped and not HEADING_LINE.match(raw) and stripped not in headings:
                current.append(raw.rstrip())
            elif current:
                paragraphs.append(current)
                current = []
        if current:
            paragraphs.append(current)
        return paragraphs

    @staticmethod
    def _already_included(paragraph: list[str], block: list[str]) -> bool:
        para = "\n".join(line.strip() for line in paragraph)
        return para in "\n".join(line.strip() for line in block)

    def _extension_paragraphs(
        self, block: list[str], texts: Sequence[str], headings: frozenset[str]
    ) -> list[str]:
        extra: list[str] = []
        for text in texts:
            for paragraph in self._paragraphs(text, headings):
                if not EXTENSION_PATTERN.search("\n".join(paragraph)):
                    continue
                if self._already_included(paragraph, block + extra):
                    continue
                extra.append("")
                extra.extend(paragraph)
        return extra

    def extract_lines(
        self,
        text: str,
        extension_text: str = "",
        headings: Sequence[str] = (),
    ) -> Optional[list[str]]:
        """
        Extract the due block as a list of lines.

        Args:
            text: Section heading and body
            extension_text: Extra text scanned only for extension paragraphs
            headings: Section heading lines that are never appended

        Returns:
            Block lines (blank separators as ""), or None if not found
        """
        if not text:
            return None

        lines = LINE_SPLIT.split(text)
        start = self._find_due_line(lines)
        if start is None:
            return None

        block, next_index = self._capture_paragraph(lines, start)
        if len(block) >= self.config.max_paragraph_lines:
            block.extend(self._capture_continuation(lines, next_index))
        heading_lines = frozenset(h.strip() for h in headings if h.strip())
        block.extend(self._extension_paragraphs(block, (text, extension_text), heading_lines))

        block = [self.cleaner.cleanup_superscripts(line) for line in block]
        while block and not block[-1].strip():
            block.pop()

        return block or None

    def extract(
        self,
        text: str,
        extension_text: str = "",
        headings: Sequence[str] = (),
    ) -> Optional[str]:
        """Extract the due block as text, or None if not found."""
        lines = self.extract_lines(text, extension_text, headings)
        if lines is None:
            return None
        return "\n".join(lines)

    def extract_for_entity(
        self,
        sections: Sequence[Section],
        entity: Entity,
    ) -> Optional[ExtractedBlock]:
        """
        Search the entity's sections, due-headed ones first, for a block.

        Args:
            sections: All sections of the document
            entity: Detected topic entity

        Returns:
            ExtractedBlock from the first section that yields one, or None
        """
        for section in self.selector.select(sections, entity):
            related = self.selector.extension_sections(sections, entity, exclude=section)
            extension_text = "\n\n".join(r.body for r in related)

            lines = self.extract_lines(
                section.text,
                extension_text,
                headings=[section.heading, *(r.heading for r in related)],
            )
            if lines:
                logger.info(f"Deterministic block found in section '{section.heading}'")
                return ExtractedBlock(
                    lines=tuple(lines),
                    heading=section.heading,
                    entity=entity,
                    reference_links=section.reference_links,
                )

        logger.debug(f"No deterministic block for {entity.value}")
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


_extractor: Optional[DueBlockExtractor] = None


def get_extractor() -> DueBlockExtractor:
    """Get or create the default extractor."""
    global _extractor
    if _extractor is None:
        _extractor = DueBlockExtractor()
    return _extractor


def extract_due_block(text: str, extension_text: str = "") -> Optional[str]:
    """
    Extract the due block from section text.

    Convenience function.
    """
    return get_extractor().extract(text, extension_text)


def looks_like_due_line(line: str) -> bool:
    """Whether a line is a genuine due statement."""
    return DueBlockExtractor.looks_like_due_line(line)
