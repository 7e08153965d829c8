"""
Schemas Module - Pydantic data models for the application.
==========================================================

Defines all data contracts used across the application:
- Topic entities, intents and routing labels
- Syllabus sections and extracted blocks
- Classifier signals and routing decisions
- The assistant's final answer
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class Entity(str, Enum):
    """Course assessments a question can be anchored to."""

    EBO = "ebo"  # Exploratory Bibliography
    ESSAY = "essay"

    @property
    def label(self) -> str:
        """Name used inside answers ("the EBO details", "the essay details")."""
        return "EBO" if self is Entity.EBO else "essay"

    @property
    def hint(self) -> str:
        """Name used in the generative system instruction."""
        return "EBO" if self is Entity.EBO else "Essay"

    @property
    def other(self) -> "Entity":
        return Entity.ESSAY if self is Entity.EBO else Entity.EBO


class Intent(str, Enum):
    """Routing decision derived from a query."""

    REDIRECT_INSTRUCTION = "redirect_instruction"
    DETERMINISTIC_LOGISTICS = "deterministic_logistics"
    GENERATIVE_FALLBACK = "generative_fallback"


class Route(str, Enum):
    """Labels reported to the analytics sink."""

    EBO_ESSAY_ASSISTANT = "EBO_ESSAY_ASSISTANT"
    DETERMINISTIC_DUE = "DETERMINISTIC_DUE"
    MODEL = "MODEL"
    GENERAL_ASSISTANT = "GENERAL_ASSISTANT"


# ─────────────────────────────────────────────────────────────────────────────
# Document Models
# ─────────────────────────────────────────────────────────────────────────────


class Section(BaseModel):
    """
    A heading-delimited span of the source document.

    The body runs from the end of the heading line to the next heading
    marker (or end of document), so consecutive sections cover the
    document without gaps or overlap.
    """

    model_config = ConfigDict(frozen=True)

    heading: str = Field(..., description="Heading text without the # marker")
    body: str = Field(default="", description="Raw text up to the next heading")
    level: int = Field(default=1, ge=1, le=6, description="Number of # characters")
    start: int = Field(default=0, ge=0, description="Offset of the heading marker")
    end: int = Field(default=0, ge=0, description="Offset where the body ends")
    reference_links: tuple[str, ...] = Field(
        default=(), description="Lesson links in first-seen order, de-duplicated"
    )

    @property
    def text(self) -> str:
        """Combined heading and body, as scanned by the matchers."""
        return f"{self.heading}\n{self.body}"

    def to_markdown(self) -> str:
        """Render the section back to markdown for prompt context."""
        return f"{'#' * self.level} {self.heading}{self.body}"


class ExtractedBlock(BaseModel):
    """Verbatim lines answering a due/penalty/extension question."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...] = Field(..., description="Block lines, blank lines kept as ''")
    heading: str = Field(default="", description="Heading of the source section")
    entity: Optional[Entity] = Field(default=None, description="Entity the block answers")
    reference_links: tuple[str, ...] = Field(default=())

    @computed_field
    @property
    def text(self) -> str:
        return "\n".join(self.lines)


# ─────────────────────────────────────────────────────────────────────────────
# Classification Models
# ─────────────────────────────────────────────────────────────────────────────


class IntentSignals(BaseModel):
    """Boolean outcome of every intent predicate for one query."""

    model_config = ConfigDict(frozen=True)

    mentions_ebo: bool = False
    mentions_essay_only: bool = False
    instruction: bool = False
    logistics: bool = False
    due: bool = False

    @property
    def entity(self) -> Optional[Entity]:
        if self.mentions_ebo:
            return Entity.EBO
        if self.mentions_essay_only:
            return Entity.ESSAY
        return None

    @property
    def has_entity(self) -> bool:
        return self.mentions_ebo or self.mentions_essay_only


class RoutingDecision(BaseModel):
    """The single route chosen for a query."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    route: Route
    entity: Optional[Entity] = None
    signals: IntentSignals = Field(default_factory=IntentSignals)

    @property
    def scope_hint(self) -> str:
        """Assessment scope named in the generative instruction."""
        return self.entity.hint if self.entity else "EBO and Essay"


# ─────────────────────────────────────────────────────────────────────────────
# Response Models
# ─────────────────────────────────────────────────────────────────────────────


class AssistantAnswer(BaseModel):
    """
    Final answer for one query.

    `text` already carries the disclaimer footer; the analytics status is
    kept apart so the HTTP layer can decide whether to expose it.
    """

    query: str = Field(..., description="The user's question")
    text: str = Field(..., description="Answer text including the disclaimer")
    decision: RoutingDecision
    block: Optional[ExtractedBlock] = Field(
        default=None, description="Set when the deterministic path answered"
    )
    reference_links: list[str] = Field(default_factory=list)
    analytics_status: str = Field(default="Qualtrics not called")

    @property
    def route(self) -> Route:
        """Route that actually produced the answer."""
        return self.decision.route

    def render(self, status_trailer: bool = True) -> str:
        """Body of the HTTP response."""
        if not status_trailer:
            return self.text
        return f"{self.text}\n<!-- {self.analytics_status} -->"
