"""
Runner Module - Routing evaluation harness.
===========================================

Runs the router over a labelled question bank, fully offline:
1. Classify each question
2. For deterministic questions, run the extractor on the current
   document (a miss turns the route into the generative one, exactly as
   the live pipeline does)
3. Compare effective route, entity and block against expectations
4. Compute metrics and generate a report

The completion service is never called.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from syllabus_assistant.evaluation.metrics import (
    RoutingMetrics,
    RoutingOutcome,
    aggregate_routing_metrics,
    block_contains_all,
)
from syllabus_assistant.evaluation.questions import QuestionBank, RoutingQuestion
from syllabus_assistant.rag.intents import route_for
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, Intent, Route
from syllabus_assistant.shared.utils import save_json

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Result Classes
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class QuestionResult:
    """Result for a single question."""

    question_id: str
    query: str
    expected_route: Route
    actual_route: Route
    expected_entity: Optional[Entity] = None
    actual_entity: Optional[Entity] = None
    block_text: Optional[str] = None
    block_hit: Optional[bool] = None

    @property
    def passed(self) -> bool:
        return self.expected_route == self.actual_route and self.block_hit is not False

    def to_outcome(self) -> RoutingOutcome:
        return RoutingOutcome(
            query_id=self.question_id,
            expected_route=self.expected_route,
            actual_route=self.actual_route,
            expected_entity=self.expected_entity,
            actual_entity=self.actual_entity,
            block_hit=self.block_hit,
        )

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "query": self.query,
            "expected_route": self.expected_route.value,
            "actual_route": self.actual_route.value,
            "expected_entity": self.expected_entity.value if self.expected_entity else None,
            "actual_entity": self.actual_entity.value if self.actual_entity else None,
            "block_hit": self.block_hit,
            "passed": self.passed,
        }


@dataclass
class RoutingEvaluationResult:
    """Complete evaluation result."""

    timestamp: str
    num_questions: int
    duration_seconds: float
    metrics: RoutingMetrics
    question_results: list[QuestionResult] = field(default_factory=list)
    config: dict = field(default_factory=dict)

    @property
    def failures(self) -> list[QuestionResult]:
        return [r for r in self.question_results if not r.passed]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "metadata": {
                "timestamp": self.timestamp,
                "num_questions": self.num_questions,
                "duration_seconds": round(self.duration_seconds, 3),
            },
            "metrics": self.metrics.to_dict(),
            "question_results": [r.to_dict() for r in self.question_results],
            "config": self.config,
        }

    def save(self, path: str | Path):
        """Save results to JSON file."""
        save_json(path, self.to_dict())
        logger.info(f"Saved evaluation results to {path}")

    def summary(self) -> str:
        """Generate summary report."""
        lines = [
            "=" * 50,
            "ROUTING EVALUATION REPORT",
            "=" * 50,
            f"Timestamp: {self.timestamp}",
            f"Questions: {self.num_questions}",
            f"Duration: {self.duration_seconds:.2f}s",
            "",
            self.metrics.summary(),
        ]

        if self.failures:
            lines.extend(["", "Failures:"])
            for r in self.failures:
                lines.append(
                    f"  {r.question_id}: expected {r.expected_route.value}, "
                    f"got {r.actual_route.value}"
                    + (" (block mismatch)" if r.block_hit is False else "")
                )

        lines.extend(["", "=" * 50])
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Evaluation Runner
# ─────────────────────────────────────────────────────────────────────────────


class RoutingEvaluator:
    """
    Evaluates routing on a question bank.

    Example:
        >>> evaluator = RoutingEvaluator(assistant)
        >>> result = evaluator.evaluate(QuestionBank.from_file("config/questions.yaml"))
        >>> print(result.summary())
    """

    def __init__(self, assistant=None, run_extraction: bool = True):
        """
        Initialize the evaluator.

        Args:
            assistant: Assistant instance (lazy-loaded if None)
            run_extraction: Run the extractor for deterministic questions;
                if False, only the classifier's route is compared
        """
        self._assistant = assistant
        self.run_extraction = run_extraction

    @property
    def assistant(self):
        """Lazy-load the assistant."""
        if self._assistant is None:
            from syllabus_assistant.rag.pipeline import get_assistant

            self._assistant = get_assistant()
        return self._assistant

    def evaluate(
        self,
        questions: QuestionBank | list[RoutingQuestion],
        progress_callback=None,
    ) -> RoutingEvaluationResult:
        """
        Run evaluation on questions.

        Args:
            questions: QuestionBank or list of RoutingQuestions
            progress_callback: Optional callback(current, total, question_id)

        Returns:
            RoutingEvaluationResult
        """
        question_list = (
            questions.questions if isinstance(questions, QuestionBank) else questions
        )

        logger.info(f"Starting routing evaluation on {len(question_list)} questions")
        start_time = time.time()

        results = []
        for i, question in enumerate(question_list):
            if progress_callback:
                progress_callback(i + 1, len(question_list), question.id)
            results.append(self._evaluate_question(question))

        metrics = aggregate_routing_metrics([r.to_outcome() for r in results])
        duration = time.time() - start_time

        logger.info(
            f"Evaluation complete in {duration:.2f}s: accuracy={metrics.accuracy:.3f}"
        )

        return RoutingEvaluationResult(
            timestamp=datetime.now().isoformat(),
            num_questions=len(question_list),
            duration_seconds=duration,
            metrics=metrics,
            question_results=results,
            config={"run_extraction": self.run_extraction},
        )

    def _evaluate_question(self, question: RoutingQuestion) -> QuestionResult:
        """Evaluate a single question."""
        decision = self.assistant.classify(question.query)
        route = decision.route
        block_text: Optional[str] = None

        if self.run_extraction and decision.intent is Intent.DETERMINISTIC_LOGISTICS:
            block = self.assistant.extract(decision.entity)
            if block is None:
                route = route_for(Intent.GENERATIVE_FALLBACK, decision.entity)
            else:
                block_text = block.text

        block_hit = None
        if question.expected_block_contains:
            block_hit = block_contains_all(block_text, question.expected_block_contains)

        return QuestionResult(
            question_id=question.id,
            query=question.query,
            expected_route=question.expected_route,
            actual_route=route,
            expected_entity=question.expected_entity,
            actual_entity=decision.entity,
            block_text=block_text,
            block_hit=block_hit,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def run_evaluation(
    questions: QuestionBank | list[RoutingQuestion] | str | Path,
    output_path: Optional[str | Path] = None,
    assistant=None,
    run_extraction: bool = True,
) -> RoutingEvaluationResult:
    """
    Run routing evaluation.

    Args:
        questions: QuestionBank, list of questions, or path to a question file
        output_path: Optional path to save results
        assistant: Assistant to evaluate (global one if None)
        run_extraction: Whether to run the deterministic extractor

    Returns:
        RoutingEvaluationResult
    """
    if isinstance(questions, (str, Path)):
        questions = QuestionBank.from_file(questions)

    evaluator = RoutingEvaluator(assistant=assistant, run_extraction=run_extraction)
    result = evaluator.evaluate(questions)

    if output_path:
        result.save(output_path)

    return result
