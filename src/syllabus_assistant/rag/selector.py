"""
Selector Module - Pick the syllabus sections relevant to a topic entity.
========================================================================

Plays the retriever's role for a document that is small enough to scan
exhaustively: instead of similarity search, sections are filtered by the
entity mention patterns.

- EBO questions get sections mentioning the EBO
- essay questions get sections mentioning the essay but not the EBO, so
  EBO-specific content never answers an essay question
- sections whose heading carries a due/deadline cue are moved to the
  front (stable partition, document order kept inside each group)
"""

import re
from typing import Optional, Sequence

from syllabus_assistant.rag.intents import topic_of
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, Section

logger = get_logger(__name__)


DUE_HEADING_PATTERN = re.compile(r"\b(?:due|deadlines?)\b", re.IGNORECASE)

EXTENSION_PATTERN = re.compile(
    r"\b(?:academic\s+consideration|accommodations?|extensions?|medical|mitigating"
    r"|documentation)\b",
    re.IGNORECASE,
)


class SectionSelector:
    """
    Filters and orders sections for a detected entity.

    Example:
        >>> selector = SectionSelector()
        >>> pool = selector.select(sections, Entity.ESSAY)
        >>> [s.heading for s in pool]
        ['Essay Due Dates', 'Essay Overview']
    """

    def __init__(
        self,
        due_heading_pattern: re.Pattern = DUE_HEADING_PATTERN,
        extension_pattern: re.Pattern = EXTENSION_PATTERN,
    ):
        self.due_heading_pattern = due_heading_pattern
        self.extension_pattern = extension_pattern

    def matches_entity(self, section: Section, entity: Entity) -> bool:
        """Whether a section's heading and body are about the entity."""
        return topic_of(section.text.lower()) is entity

    def has_due_heading(self, section: Section) -> bool:
        return bool(self.due_heading_pattern.search(section.heading))

    def select(self, sections: Sequence[Section], entity: Entity) -> list[Section]:
        """
        Sections relevant to an entity, due-headed ones first.

        Args:
            sections: All sections in document order
            entity: Detected topic entity

        Returns:
            Prioritized subset of sections
        """
        pool = [s for s in sections if self.matches_entity(s, entity)]
        prioritized = [s for s in pool if self.has_due_heading(s)] + [
            s for s in pool if not self.has_due_heading(s)
        ]
        logger.debug(
            f"Selected {len(prioritized)}/{len(sections)} sections for {entity.value}"
        )
        return prioritized

    def extension_sections(
        self,
        sections: Sequence[Section],
        entity: Entity,
        exclude: Optional[Section] = None,
    ) -> list[Section]:
        """
        Sections that may hold extension/accommodation rules for an entity.

        A section qualifies if its body carries an extension cue and it is
        not specific to the other entity.
        """
        related = []
        for section in sections:
            if exclude is not None and section == exclude:
                continue
            if topic_of(section.text.lower()) is entity.other:
                continue
            if self.extension_pattern.search(section.body):
                related.append(section)
        return related


_selector: Optional[SectionSelector] = None


def get_selector() -> SectionSelector:
    """Get or create the default selector."""
    global _selector
    if _selector is None:
        _selector = SectionSelector()
    return _selector


def select_sections(sections: Sequence[Section], entity: Entity) -> list[Section]:
    """
    Select sections for an entity.

    Convenience function.
    """
    return get_selector().select(sections, entity)
