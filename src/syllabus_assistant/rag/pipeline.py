"""
Pipeline Module - Route a question to exactly one answer path.
==============================================================

    query → normalize → classify
        redirect       → fixed redirect message
        deterministic  → sections → selector → extractor → verbatim block
                         (a miss falls through to the generative path)
        generative     → prompt with section/document materials → delegate

Every path ends with the disclaimer footer and a best-effort analytics
record. Only a missing query and a missing completion credential are
raised to the caller.
"""

from typing import Optional

from syllabus_assistant.ingestion.loader import DocumentStore
from syllabus_assistant.ingestion.sectionizer import Sectionizer
from syllabus_assistant.rag.analytics import AnalyticsSink, NullSink, create_sink
from syllabus_assistant.rag.composer import NO_RESPONSE, ResponseComposer
from syllabus_assistant.rag.extractor import DueBlockExtractor
from syllabus_assistant.rag.generator import CompletionService, OpenAICompletionService
from syllabus_assistant.rag.intents import IntentClassifier, route_for
from syllabus_assistant.rag.prompts import PromptBuilder
from syllabus_assistant.rag.selector import SectionSelector
from syllabus_assistant.shared.config import Settings, get_settings
from syllabus_assistant.shared.errors import (
    CompletionServiceError,
    MissingConfigurationError,
    RequestValidationError,
)
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import (
    AssistantAnswer,
    Entity,
    ExtractedBlock,
    Intent,
    RoutingDecision,
)
from syllabus_assistant.shared.utils import dedupe_preserve_order, truncate_text

logger = get_logger(__name__)


class Assistant:
    """
    The course Q&A pipeline.

    All collaborators are injected; nothing reads configuration globally.

    Example:
        >>> assistant = Assistant.from_settings(get_settings())
        >>> answer = assistant.answer("When is the essay due?")
        >>> print(answer.route, answer.text)
    """

    def __init__(
        self,
        store: DocumentStore,
        classifier: Optional[IntentClassifier] = None,
        selector: Optional[SectionSelector] = None,
        extractor: Optional[DueBlockExtractor] = None,
        composer: Optional[ResponseComposer] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        delegate: Optional[CompletionService] = None,
        analytics: Optional[AnalyticsSink] = None,
    ):
        """
        Initialize the assistant.

        Args:
            store: Source document store
            classifier: Intent classifier
            selector: Section selector
            extractor: Deterministic due-block extractor
            composer: Answer text composer
            prompt_builder: Generative prompt builder
            delegate: Completion service; None disables the generative path
            analytics: Analytics sink (NullSink if not given)
        """
        self.store = store
        self.classifier = classifier or IntentClassifier()
        self.selector = selector or SectionSelector()
        self.extractor = extractor or DueBlockExtractor(selector=self.selector)
        self.composer = composer or ResponseComposer()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.delegate = delegate
        self.analytics = analytics or NullSink()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Assistant":
        """Wire every component from one Settings object."""
        settings = settings or get_settings()

        selector = SectionSelector()
        extractor = DueBlockExtractor.from_settings(settings, selector=selector)

        delegate = None
        if settings.has_completion_credentials:
            delegate = OpenAICompletionService.from_settings(settings)

        return cls(
            store=DocumentStore(
                settings.resolve_content_path(),
                sectionizer=Sectionizer.from_settings(settings),
            ),
            classifier=IntentClassifier.from_settings(settings),
            selector=selector,
            extractor=extractor,
            composer=ResponseComposer.from_settings(settings),
            prompt_builder=PromptBuilder(context_scope=settings.generation.context_scope),
            delegate=delegate,
            analytics=create_sink(settings),
        )

    # Individual steps

    def classify(self, query: str) -> RoutingDecision:
        """Route a query without touching the document or any service."""
        return self.classifier.route(query)

    def extract(self, entity: Entity) -> Optional[ExtractedBlock]:
        """Run the deterministic lookup for an entity on the current document."""
        return self.extractor.extract_for_entity(self.store.sections(), entity)

    def _generate(self, query: str, decision: RoutingDecision) -> tuple[str, list[str]]:
        if self.delegate is None:
            raise MissingConfigurationError()

        document = self.store.load()
        sections = (
            self.selector.select(document.sections, decision.entity) if decision.entity else []
        )
        system_prompt, user_prompt = self.prompt_builder.build_prompt(
            query, decision.scope_hint, sections, document.text
        )

        try:
            completion = self.delegate.complete(system_prompt, user_prompt)
        except CompletionServiceError as e:
            logger.error(f"Completion failed, using placeholder answer: {e}")
            completion = ""

        if not completion.strip():
            completion = NO_RESPONSE

        links = dedupe_preserve_order(link for s in sections for link in s.reference_links)
        return self.composer.generative(completion, links), links

    # Full pipeline

    def answer(self, query: Optional[str]) -> AssistantAnswer:
        """
        Answer one question.

        Args:
            query: Raw user query

        Returns:
            AssistantAnswer with text, effective routing decision and
            analytics status

        Raises:
            RequestValidationError: The query is missing or blank
            MissingConfigurationError: The generative path was needed but
                no completion service is configured
        """
        query = (query or "").strip()
        if not query:
            raise RequestValidationError("Missing query")

        decision = self.classify(query)
        block: Optional[ExtractedBlock] = None
        links: list[str] = []

        if decision.intent is Intent.REDIRECT_INSTRUCTION:
            body = self.composer.redirect(decision.entity)

        else:
            if decision.intent is Intent.DETERMINISTIC_LOGISTICS:
                block = self.extract(decision.entity)
                if block is None:
                    logger.info("No deterministic block found; falling back to the model")
                    decision = decision.model_copy(
                        update={
                            "intent": Intent.GENERATIVE_FALLBACK,
                            "route": route_for(Intent.GENERATIVE_FALLBACK, decision.entity),
                        }
                    )

            if block is not None:
                body = self.composer.deterministic(block)
                links = list(block.reference_links)
            else:
                body, links = self._generate(query, decision)

        logger.info(
            f"Answered '{truncate_text(query)}' via {decision.route.value} "
            f"(entity={decision.entity.value if decision.entity else None})"
        )

        text = self.composer.with_disclaimer(body)
        status = self.analytics.record(text, query, decision.route)

        return AssistantAnswer(
            query=query,
            text=text,
            decision=decision,
            block=block,
            reference_links=links,
            analytics_status=status,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


_assistant: Optional[Assistant] = None


def get_assistant() -> Assistant:
    """Get or create the global assistant built from the global settings."""
    global _assistant
    if _assistant is None:
        _assistant = Assistant.from_settings(get_settings())
    return _assistant


def answer_query(query: str) -> AssistantAnswer:
    """
    Answer a question with the global assistant.

    Convenience function.
    """
    return get_assistant().answer(query)
