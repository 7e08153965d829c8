"""
Evaluation Module - Routing evaluation harness.
===============================================

Provides tools for evaluating the query router offline:
- Question bank loading and management
- Routing metrics (accuracy, per-route precision/recall)
- Deterministic block hit rate
- Evaluation runner and reporting

Components:
- questions: Question bank management
- metrics: Routing and extraction metrics
- runner: Evaluation execution harness

Example:
    >>> from syllabus_assistant.evaluation import RoutingEvaluator, load_questions
    >>> questions = load_questions("config/questions.yaml")
    >>> result = RoutingEvaluator().evaluate(questions)
    >>> print(f"Accuracy: {result.metrics.accuracy:.3f}")
"""

from syllabus_assistant.evaluation.questions import (
    QuestionBank,
    RoutingQuestion,
    create_question,
    create_sample_questions,
    load_questions,
)
from syllabus_assistant.evaluation.metrics import (
    RouteScore,
    RoutingMetrics,
    RoutingOutcome,
    aggregate_routing_metrics,
    block_contains_all,
)
from syllabus_assistant.evaluation.runner import (
    QuestionResult,
    RoutingEvaluationResult,
    RoutingEvaluator,
    run_evaluation,
)

__all__ = [
    # Questions
    "QuestionBank",
    "RoutingQuestion",
    "create_question",
    "create_sample_questions",
    "load_questions",
    # Metrics
    "RouteScore",
    "RoutingMetrics",
    "RoutingOutcome",
    "aggregate_routing_metrics",
    "block_contains_all",
    # Runner
    "QuestionResult",
    "RoutingEvaluationResult",
    "RoutingEvaluator",
    "run_evaluation",
]
