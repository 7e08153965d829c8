"""
Intents Module - Rule-based query classification and routing.
==============================================================

Every cue list is data: a table of named predicates, each a tuple of
regular expressions matched against the normalized (lowercased, trimmed)
query. The predicates are pure and independent of one another; only the
routing policy layers them:

    redirect       = entity AND instruction AND NOT logistics
    deterministic  = NOT redirect AND due AND entity
    fallback       = everything else

Logistics cues override instruction cues, so a question that mentions
formatting in passing but asks about a date is never redirected.
"""

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Optional

from syllabus_assistant.ingestion.cleaner import TextCleaner
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import (
    Entity,
    Intent,
    IntentSignals,
    Route,
    RoutingDecision,
)

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Predicate Table
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class IntentPredicate:
    """A named boolean test: true if any of its patterns matches."""

    name: str
    patterns: tuple[str, ...]
    description: str = ""

    @cached_property
    def _compiled(self) -> tuple[re.Pattern, ...]:
        return tuple(re.compile(p, re.IGNORECASE) for p in self.patterns)

    def matches(self, text: str) -> bool:
        return any(rx.search(text) for rx in self._compiled)

    def extend(self, *patterns: str) -> "IntentPredicate":
        """Return a copy with additional patterns."""
        return IntentPredicate(self.name, self.patterns + patterns, self.description)


EBO_MENTION = IntentPredicate(
    name="mentions_ebo",
    patterns=(
        r"\be\.?\s*b\.?\s*o\b\.?",
        r"\bexploratory\b.*\bbibliograph",
    ),
    description="Abbreviation with optional periods/spaces, or the expanded name",
)

ESSAY_MENTION = IntentPredicate(
    name="mentions_essay",
    patterns=(r"\bessays?\b",),
    description="Plain keyword, singular or plural",
)

INSTRUCTION = IntentPredicate(
    name="instruction",
    patterns=(
        r"\bhow\s+to\b",
        r"\bhow\s+do\s+i\b",
        r"\binstructions?\b",
        r"\bsteps?\b",
        r"\bformat(?:s|ted|ting)?\b",
        r"\bcitations?\b",
        r"\breferences?\b",
        r"\bmla\b",
        r"\bchicago\b",
        r"\bturabian\b",
        r"\brubrics?\b",
        r"\brequirements?\b",
        r"\bword\s*count\b",
        r"\bstructure\b",
        r"\boutline\b",
        r"\btemplate\b",
        r"\bscaffold(?:ing)?\b",
        r"\bsubmit(?:ting)?\b",
        r"\bsubmission\b",
        r"\bchecklist\b",
        r"\bexamples?\b",
        r"\bmodel\s+paper\b",
        r"\bcan\s+i\s+use\b",
        r"\bis\s+it\s+ok(?:ay)?\s+to\b",
        r"\bshould\s+i\b",
    ),
    description="How-to, format, citation, requirement, submission and example cues",
)

SOURCE_QUALITY = IntentPredicate(
    name="source_quality",
    patterns=(
        r"\bscholarly\b",
        r"\bpeer[-\s]?reviewed\b",
        r"\bcredible\b",
        r"\b(?:jstor|proquest|ebsco(?:host)?|google\s+scholar|omni)\b",
        r"\bdatabases?\b",
        r"\bsame\s+(?:site|website|journal)\b",
    ),
    description="Source-quality cues, counted as instruction intent",
)

LOGISTICS = IntentPredicate(
    name="logistics",
    patterns=(
        r"\bdue\b",
        r"\bdeadlines?\b",
        r"\bworth\b",
        r"\bweight(?:s|ed|ing)?\b",
        r"\bpercentage\b",
        r"\bmarks?\b",
        r"\bopens?\b(?!-)",
        r"\bcloses?\b(?!-)",
        r"\bavailab(?:le|ility)\b",
        r"\bwindow\b",
        r"(?<!-)\bdates?\b",
        r"\btimes?\b",
        r"\bschedule[sd]?\b",
    ),
    description="Date, deadline, weighting and availability cues",
)

DUE = IntentPredicate(
    name="due",
    patterns=(
        r"\bwhen\b.*\bdue\b",
        r"\bdue\s*dates?\b",
        r"\bdeadlines?\b",
        r"\bdue\b",
        r"\blate\b",
        r"\bpenalt(?:y|ies)\b",
        r"\bsubmission\s+window\b",
        r"\bsubmit\b",
    ),
    description="Narrow due/deadline/late/penalty/submission cues",
)

DEFAULT_PREDICATES: dict[str, IntentPredicate] = {
    p.name: p
    for p in (EBO_MENTION, ESSAY_MENTION, INSTRUCTION, SOURCE_QUALITY, LOGISTICS, DUE)
}


def topic_of(text: str) -> Optional[Entity]:
    """
    Entity a piece of text is about.

    The EBO pattern wins: text mentioning both is an EBO text, text
    mentioning only the essay is an essay text.
    """
    if EBO_MENTION.matches(text):
        return Entity.EBO
    if ESSAY_MENTION.matches(text):
        return Entity.ESSAY
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Classifier
# ─────────────────────────────────────────────────────────────────────────────


class IntentClassifier:
    """
    Evaluates the predicate table and applies the routing policy.

    Example:
        >>> classifier = IntentClassifier()
        >>> classifier.route("How do I format my EBO citations in MLA?").route
        <Route.EBO_ESSAY_ASSISTANT: 'EBO_ESSAY_ASSISTANT'>
    """

    def __init__(
        self,
        predicates: Optional[dict[str, IntentPredicate]] = None,
        deterministic_intent: str = "due",
        source_quality_cues: bool = True,
        cleaner: Optional[TextCleaner] = None,
    ):
        """
        Initialize the classifier.

        Args:
            predicates: Predicate table (defaults to DEFAULT_PREDICATES)
            deterministic_intent: "due" for the narrow cue set, "logistics"
                to let any logistics question try the extractor
            source_quality_cues: Count source-quality cues as instruction intent
            cleaner: Query normalizer
        """
        if deterministic_intent not in ("due", "logistics"):
            raise ValueError(f"Unknown deterministic intent: {deterministic_intent}")

        self.predicates = dict(predicates or DEFAULT_PREDICATES)
        self.deterministic_intent = deterministic_intent
        self.source_quality_cues = source_quality_cues
        self.cleaner = cleaner or TextCleaner()

    @classmethod
    def from_settings(cls, settings) -> "IntentClassifier":
        return cls(
            deterministic_intent=settings.classification.deterministic_intent,
            source_quality_cues=settings.classification.source_quality_cues,
        )

    def _check(self, name: str, query: str) -> bool:
        return self.predicates[name].matches(self.cleaner.normalize(query))

    # Individual predicates

    def mentions_ebo(self, query: str) -> bool:
        return self._check("mentions_ebo", query)

    def mentions_essay_only(self, query: str) -> bool:
        return self._check("mentions_essay", query) and not self.mentions_ebo(query)

    def is_instruction(self, query: str) -> bool:
        if self._check("instruction", query):
            return True
        return self.source_quality_cues and self._check("source_quality", query)

    def is_logistics(self, query: str) -> bool:
        return self._check("logistics", query)

    def is_due(self, query: str) -> bool:
        return self._check("due", query)

    def detect_entity(self, query: str) -> Optional[Entity]:
        """Topic entity of a query, EBO taking priority."""
        if self.mentions_ebo(query):
            return Entity.EBO
        if self.mentions_essay_only(query):
            return Entity.ESSAY
        return None

    def signals(self, query: str) -> IntentSignals:
        """Evaluate every predicate for a query."""
        return IntentSignals(
            mentions_ebo=self.mentions_ebo(query),
            mentions_essay_only=self.mentions_essay_only(query),
            instruction=self.is_instruction(query),
            logistics=self.is_logistics(query),
            due=self.is_due(query),
        )

    def explain(self, query: str) -> dict[str, bool]:
        """Raw outcome of every predicate in the table, by name."""
        normalized = self.cleaner.normalize(query)
        return {name: p.matches(normalized) for name, p in self.predicates.items()}

    # Routing policy

    def route(self, query: str) -> RoutingDecision:
        """
        Choose exactly one route for a query.

        Args:
            query: Raw user query

        Returns:
            RoutingDecision with intent, analytics label, entity and signals
        """
        signals = self.signals(query)
        entity = signals.entity
        deterministic_cue = signals.due if self.deterministic_intent == "due" else signals.logistics

        if signals.has_entity and signals.instruction and not signals.logistics:
            intent = Intent.REDIRECT_INSTRUCTION
        elif signals.has_entity and deterministic_cue:
            intent = Intent.DETERMINISTIC_LOGISTICS
        else:
            intent = Intent.GENERATIVE_FALLBACK

        decision = RoutingDecision(
            intent=intent,
            route=route_for(intent, entity),
            entity=entity,
            signals=signals,
        )
        logger.debug(f"Classified query: intent={intent.value}, entity={entity}")
        return decision


def route_for(intent: Intent, entity: Optional[Entity]) -> Route:
    """Analytics label for an intent."""
    if intent is Intent.REDIRECT_INSTRUCTION:
        return Route.EBO_ESSAY_ASSISTANT
    if intent is Intent.DETERMINISTIC_LOGISTICS:
        return Route.DETERMINISTIC_DUE
    return Route.MODEL if entity is not None else Route.GENERAL_ASSISTANT


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


_classifier: Optional[IntentClassifier] = None


def get_classifier() -> IntentClassifier:
    """Get or create the default classifier."""
    global _classifier
    if _classifier is None:
        _classifier = IntentClassifier()
    return _classifier


def classify_query(query: str) -> RoutingDecision:
    """
    Route a query with the default classifier.

    Convenience function.
    """
    return get_classifier().route(query)
