"""
Prompts Module - System instruction for the generative fallback.
================================================================

The completion service only ever sees two messages: a system instruction
that embeds the course materials, and the student's question verbatim.
The instruction enforces:
- Scope (EBO, Essay, or both)
- Grounding (only the provided materials)
- Verbatim quoting of relevant text
- No invented dates or deadlines
"""

from typing import Optional, Sequence

from syllabus_assistant.ingestion.sectionizer import render_sections
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Section

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# System Prompt
# ─────────────────────────────────────────────────────────────────────────────


SYSTEM_PROMPT_TEMPLATE = """You answer questions exclusively about the {scope}. Use ONLY the text in the materials below. If relevant text exists, quote it verbatim (blockquote or quoted). It's acceptable to say "According to the syllabus". Do not invent dates or deadlines. If unsure, say you cannot find it in the provided materials.

Materials:
{materials}"""


NO_MATERIALS = "(No course materials are available.)"


# ─────────────────────────────────────────────────────────────────────────────
# Prompt Builder
# ─────────────────────────────────────────────────────────────────────────────


class PromptBuilder:
    """
    Builds the (system, user) message pair for the completion service.

    Example:
        >>> builder = PromptBuilder()
        >>> system, user = builder.build_prompt(query, "Essay", sections, document)
    """

    def __init__(self, context_scope: str = "sections"):
        """
        Initialize the prompt builder.

        Args:
            context_scope: "sections" to embed only the matched sections when
                there are any, "document" to always embed the whole document
        """
        if context_scope not in ("sections", "document"):
            raise ValueError(f"Unknown context scope: {context_scope}")
        self.context_scope = context_scope

    def select_materials(
        self,
        sections: Optional[Sequence[Section]],
        document: str,
    ) -> str:
        """Matched sections rendered to markdown, else the whole document."""
        if self.context_scope == "sections" and sections:
            return render_sections(sections)
        return document.strip()

    def build_system_prompt(self, scope: str, materials: str) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(
            scope=scope,
            materials=materials or NO_MATERIALS,
        )

    def build_prompt(
        self,
        query: str,
        scope: str,
        sections: Optional[Sequence[Section]],
        document: str,
    ) -> tuple[str, str]:
        """
        Build the generative prompt.

        Args:
            query: User query, passed through unchanged
            scope: Scope hint ("EBO", "Essay" or "EBO and Essay")
            sections: Sections matched to the query's entity, if any
            document: Full source document text

        Returns:
            Tuple of (system_prompt, user_prompt)
        """
        materials = self.select_materials(sections, document)
        logger.debug(f"Prompt materials: {len(materials)} chars, scope={scope}")
        return self.build_system_prompt(scope, materials), query


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def build_prompt(
    query: str,
    scope: str,
    sections: Optional[Sequence[Section]],
    document: str,
) -> tuple[str, str]:
    """
    Build the generative prompt with section-scoped materials.

    Convenience function.
    """
    return PromptBuilder().build_prompt(query, scope, sections, document)
