"""
Metrics Module - Routing evaluation metrics.
============================================

Provides metrics for evaluating the query router:

Routing Metrics:
- Accuracy (effective route equals expected route)
- Per-route precision and recall
- Entity detection accuracy

Extraction Metrics:
- Block hit rate (deterministic questions whose block contains every
  expected fragment)
"""

from dataclasses import dataclass, field
from typing import Optional

from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, Route

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Metric Containers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class RouteScore:
    """Precision/recall for one route label."""

    route: Route
    true_positives: int = 0
    false_positives: int = 0
    false_negatives: int = 0

    @property
    def precision(self) -> float:
        predicted = self.true_positives + self.false_positives
        return self.true_positives / predicted if predicted else 0.0

    @property
    def recall(self) -> float:
        expected = self.true_positives + self.false_negatives
        return self.true_positives / expected if expected else 0.0

    @property
    def support(self) -> int:
        return self.true_positives + self.false_negatives

    def to_dict(self) -> dict:
        return {
            "precision": round(self.precision, 4),
            "recall": round(self.recall, 4),
            "support": self.support,
        }


@dataclass
class RoutingMetrics:
    """Container for routing quality metrics."""

    accuracy: float = 0.0
    entity_accuracy: float = 0.0
    block_hit_rate: float = 0.0
    num_questions: int = 0
    num_block_checks: int = 0
    per_route: dict[Route, RouteScore] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "accuracy": round(self.accuracy, 4),
            "entity_accuracy": round(self.entity_accuracy, 4),
            "block_hit_rate": round(self.block_hit_rate, 4),
            "num_questions": self.num_questions,
            "num_block_checks": self.num_block_checks,
            "per_route": {r.value: s.to_dict() for r, s in self.per_route.items()},
        }

    def summary(self) -> str:
        """Human-readable metrics table."""
        lines = [
            f"Accuracy:         {self.accuracy:.3f} ({self.num_questions} questions)",
            f"Entity accuracy:  {self.entity_accuracy:.3f}",
            f"Block hit rate:   {self.block_hit_rate:.3f} ({self.num_block_checks} checked)",
            "",
            f"{'Route':<22} {'Precision':>9} {'Recall':>7} {'Support':>8}",
        ]
        for route, score in self.per_route.items():
            lines.append(
                f"{route.value:<22} {score.precision:>9.3f} {score.recall:>7.3f} {score.support:>8}"
            )
        return "\n".join(lines)

    def __str__(self) -> str:
        return (
            f"RoutingMetrics(Accuracy={self.accuracy:.3f}, "
            f"BlockHitRate={self.block_hit_rate:.3f})"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Per-Question Outcome
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class RoutingOutcome:
    """Expected vs. actual routing for one question."""

    query_id: str
    expected_route: Route
    actual_route: Route
    expected_entity: Optional[Entity] = None
    actual_entity: Optional[Entity] = None
    # None when the question has no block expectations
    block_hit: Optional[bool] = None

    @property
    def route_correct(self) -> bool:
        return self.expected_route == self.actual_route

    @property
    def entity_correct(self) -> bool:
        return self.expected_entity == self.actual_entity


# ─────────────────────────────────────────────────────────────────────────────
# Metric Calculations
# ─────────────────────────────────────────────────────────────────────────────


def block_contains_all(block_text: Optional[str], fragments: list[str]) -> bool:
    """Whether a block contains every expected fragment verbatim."""
    if block_text is None:
        return False
    return all(fragment in block_text for fragment in fragments)


def calculate_route_scores(outcomes: list[RoutingOutcome]) -> dict[Route, RouteScore]:
    """Confusion counts per route, in Route declaration order."""
    scores = {route: RouteScore(route=route) for route in Route}

    for outcome in outcomes:
        if outcome.route_correct:
            scores[outcome.actual_route].true_positives += 1
        else:
            scores[outcome.actual_route].false_positives += 1
            scores[outcome.expected_route].false_negatives += 1

    return scores


def aggregate_routing_metrics(outcomes: list[RoutingOutcome]) -> RoutingMetrics:
    """
    Aggregate routing metrics across questions.

    Args:
        outcomes: One RoutingOutcome per question

    Returns:
        RoutingMetrics
    """
    if not outcomes:
        return RoutingMetrics()

    n = len(outcomes)
    block_checks = [o.block_hit for o in outcomes if o.block_hit is not None]

    metrics = RoutingMetrics(
        accuracy=sum(o.route_correct for o in outcomes) / n,
        entity_accuracy=sum(o.entity_correct for o in outcomes) / n,
        block_hit_rate=(sum(block_checks) / len(block_checks)) if block_checks else 0.0,
        num_questions=n,
        num_block_checks=len(block_checks),
        per_route=calculate_route_scores(outcomes),
    )

    logger.debug(f"Aggregated routing metrics: {metrics}")
    return metrics
