"""
Composer Module - Assemble the final answer text.
=================================================

Three answer shapes, one footer:

- redirect: fixed message naming the EBO & Essay assistant and its link
- deterministic: "According to the syllabus, the <entity> details are:"
  followed by the verbatim block and the section's lesson links
- generative: the completion text, optionally with inline lesson links
  moved into an appended list

Every answer ends with the disclaimer pointing to the course page.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from syllabus_assistant.shared.config import (
    DEFAULT_ASSISTANT_URL,
    DEFAULT_COURSE_PAGE,
    DEFAULT_LESSON_PATTERN,
)
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, ExtractedBlock
from syllabus_assistant.shared.utils import dedupe_preserve_order

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Templates
# ─────────────────────────────────────────────────────────────────────────────


NO_RESPONSE = "No response from the assistant."

DETERMINISTIC_HEADER = "According to the syllabus, the {label} details are:"

LINKS_HEADER = "Relevant course page(s):"

DISCLAIMER = "There may be errors in my responses; always refer to the course page: {course_page}"

REDIRECT_TEMPLATE = (
    "It looks like you're asking how to complete the {label} (formatting, citations, "
    "requirements or submission steps). This assistant only answers questions about "
    "course logistics and dates. For step-by-step help with the {label}, please use the "
    "{assistant_name}: {assistant_url}"
)


# ─────────────────────────────────────────────────────────────────────────────
# Composer Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ComposerConfig:
    """Links and names used in composed answers."""

    course_page: str = DEFAULT_COURSE_PAGE
    assistant_url: str = DEFAULT_ASSISTANT_URL
    assistant_name: str = "EBO & Essay Assistant"
    lesson_pattern: str = DEFAULT_LESSON_PATTERN
    strip_inline_links: bool = True


# ─────────────────────────────────────────────────────────────────────────────
# Composer Class
# ─────────────────────────────────────────────────────────────────────────────


class ResponseComposer:
    """
    Builds answer text for each route.

    Example:
        >>> composer = ResponseComposer()
        >>> text = composer.with_disclaimer(composer.deterministic(block))
    """

    def __init__(self, config: Optional[ComposerConfig] = None):
        self.config = config or ComposerConfig()
        lesson = self.config.lesson_pattern
        self._markdown_link_re = re.compile(r"\[([^\]\n]*)\]\(\s*(?:" + lesson + r")\s*\)")
        self._bare_link_re = re.compile(r"<?(?:" + lesson + r")>?")

    @classmethod
    def from_settings(cls, settings) -> "ResponseComposer":
        return cls(
            ComposerConfig(
                course_page=settings.course_page,
                assistant_url=settings.assistant_url,
                assistant_name=settings.redirect.assistant_name,
                lesson_pattern=settings.links.lesson_pattern,
                strip_inline_links=settings.generation.strip_inline_links,
            )
        )

    # Pieces

    def disclaimer(self) -> str:
        return DISCLAIMER.format(course_page=self.config.course_page)

    @staticmethod
    def links_block(links: Sequence[str]) -> str:
        """Bulleted link list, or "" when there are no links."""
        links = dedupe_preserve_order(list(links))
        if not links:
            return ""
        bullets = "\n".join(f"- {url}" for url in links)
        return f"\n\n{LINKS_HEADER}\n{bullets}"

    def strip_inline_links(self, text: str) -> str:
        """Replace markdown lesson links with their text and drop bare lesson URLs."""
        text = self._markdown_link_re.sub(lambda m: m.group(1), text)
        text = self._bare_link_re.sub("", text)
        # Removed URLs leave trailing whitespace behind
        return "\n".join(line.rstrip() for line in text.split("\n")).strip()

    # Answers

    def redirect(self, entity: Optional[Entity]) -> str:
        """Message pointing instruction questions at the other assistant."""
        return REDIRECT_TEMPLATE.format(
            label=entity.label if entity else "EBO or essay",
            assistant_name=self.config.assistant_name,
            assistant_url=self.config.assistant_url,
        )

    def deterministic(self, block: ExtractedBlock) -> str:
        """Header, verbatim block and the source section's links."""
        label = block.entity.label if block.entity else "course"
        header = DETERMINISTIC_HEADER.format(label=label)
        return f"{header}\n\n{block.text}{self.links_block(block.reference_links)}"

    def generative(self, completion: str, links: Sequence[str] = ()) -> str:
        """
        Post-process a completion.

        Inline lesson links are only moved when there is a list of matched
        section links to append; otherwise the completion is kept as-is.
        """
        text = completion.strip() or NO_RESPONSE
        if not self.config.strip_inline_links or not links:
            return text
        stripped = self.strip_inline_links(text) or NO_RESPONSE
        return f"{stripped}{self.links_block(links)}"

    def with_disclaimer(self, text: str) -> str:
        return f"{text}\n\n{self.disclaimer()}"
