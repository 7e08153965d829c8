"""
RAG Module - Query routing, deterministic extraction and generation.
====================================================================

This module implements the complete question-answering workflow:

- intents: Declarative predicate table and the routing policy
- selector: Entity-scoped section selection
- extractor: Deterministic due/penalty/extension block extraction
- prompts: System instruction for the generative fallback
- generator: Completion delegate (OpenAI)
- analytics: Optional Qualtrics response logging
- composer: Answer text assembly and disclaimer footer
- pipeline: The Assistant tying every step together

Flow:
    Query → Classifier → (Redirect | Selector → Extractor | Prompt → Delegate)
          → Composer → Answer
"""

from syllabus_assistant.rag.intents import (
    DEFAULT_PREDICATES,
    IntentClassifier,
    IntentPredicate,
    classify_query,
    route_for,
    topic_of,
)
from syllabus_assistant.rag.selector import SectionSelector, select_sections
from syllabus_assistant.rag.extractor import (
    DueBlockExtractor,
    ExtractorConfig,
    extract_due_block,
    looks_like_due_line,
)
from syllabus_assistant.rag.prompts import PromptBuilder, build_prompt
from syllabus_assistant.rag.generator import CompletionService, OpenAICompletionService
from syllabus_assistant.rag.analytics import (
    AnalyticsSink,
    NullSink,
    QualtricsSink,
    create_sink,
)
from syllabus_assistant.rag.composer import ComposerConfig, ResponseComposer
from syllabus_assistant.rag.pipeline import Assistant, answer_query, get_assistant

__all__ = [
    # Intents
    "DEFAULT_PREDICATES",
    "IntentClassifier",
    "IntentPredicate",
    "classify_query",
    "route_for",
    "topic_of",
    # Selector
    "SectionSelector",
    "select_sections",
    # Extractor
    "DueBlockExtractor",
    "ExtractorConfig",
    "extract_due_block",
    "looks_like_due_line",
    # Prompts
    "PromptBuilder",
    "build_prompt",
    # Generator
    "CompletionService",
    "OpenAICompletionService",
    # Analytics
    "AnalyticsSink",
    "NullSink",
    "QualtricsSink",
    "create_sink",
    # Composer
    "ComposerConfig",
    "ResponseComposer",
    # Pipeline
    "Assistant",
    "answer_query",
    "get_assistant",
]
