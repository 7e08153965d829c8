"""
Questions Module - Routing question bank for evaluation.
========================================================

Manages labelled questions for routing evaluation:
- Loading/saving question banks (JSON/YAML)
- Expected route and entity per question
- Expected fragments of the deterministic block
- Filtering and statistics
"""

import hashlib
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Entity, Route
from syllabus_assistant.shared.utils import load_json, save_json

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Question Model
# ─────────────────────────────────────────────────────────────────────────────


class RoutingQuestion(BaseModel):
    """A single routing evaluation question."""

    id: str = Field(..., description="Unique question identifier")
    query: str = Field(..., description="The question text")
    expected_route: Route = Field(..., description="Route the answer should come from")
    expected_entity: Optional[Entity] = Field(
        default=None,
        description="Entity the classifier should detect (None = neither)",
    )
    expected_block_contains: list[str] = Field(
        default_factory=list,
        description="Fragments the deterministic block must contain verbatim",
    )
    notes: Optional[str] = Field(default=None, description="Notes about the question")
    tags: list[str] = Field(default_factory=list, description="Tags for categorization")

    @field_validator("expected_route", mode="before")
    @classmethod
    def normalize_route(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("expected_entity", mode="before")
    @classmethod
    def normalize_entity(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


# ─────────────────────────────────────────────────────────────────────────────
# Question Bank
# ─────────────────────────────────────────────────────────────────────────────


class QuestionBank:
    """
    Manages a collection of routing questions.

    Example:
        >>> bank = QuestionBank.from_file("config/questions.yaml")
        >>> deterministic = bank.filter(route=Route.DETERMINISTIC_DUE)
        >>> bank.stats()["by_route"]
    """

    def __init__(self, questions: Optional[list[RoutingQuestion]] = None):
        self.questions: list[RoutingQuestion] = questions or []
        self._index: dict[str, RoutingQuestion] = {q.id: q for q in self.questions}

    @classmethod
    def from_file(cls, path: str | Path) -> "QuestionBank":
        """
        Load question bank from file.

        Args:
            path: Path to a JSON or YAML file, either a list of questions
                or a mapping with a "questions" key

        Returns:
            QuestionBank instance
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or []
        else:
            data = load_json(path)

        if isinstance(data, dict):
            data = data.get("questions", [])

        questions = [RoutingQuestion(**item) for item in data]
        logger.info(f"Loaded {len(questions)} questions from {path}")

        return cls(questions=questions)

    def save(self, path: str | Path):
        """Save question bank to a JSON file."""
        data = [q.model_dump(mode="json") for q in self.questions]
        save_json(path, {"questions": data, "count": len(data)})
        logger.info(f"Saved {len(self.questions)} questions to {path}")

    def add(self, question: RoutingQuestion):
        """Add a question to the bank."""
        if question.id in self._index:
            logger.warning(f"Question {question.id} already exists, replacing")
            self.questions = [q for q in self.questions if q.id != question.id]
        self.questions.append(question)
        self._index[question.id] = question

    def get(self, question_id: str) -> Optional[RoutingQuestion]:
        """Get a question by ID."""
        return self._index.get(question_id)

    def filter(
        self,
        route: Optional[Route] = None,
        entity: Optional[Entity] = None,
        tags: Optional[list[str]] = None,
    ) -> list[RoutingQuestion]:
        """
        Filter questions by criteria.

        Args:
            route: Filter by expected route
            entity: Filter by expected entity
            tags: Filter by tags (any match)

        Returns:
            List of matching questions
        """
        result = self.questions

        if route is not None:
            result = [q for q in result if q.expected_route == route]

        if entity is not None:
            result = [q for q in result if q.expected_entity == entity]

        if tags:
            tag_set = set(t.lower() for t in tags)
            result = [q for q in result if any(t.lower() in tag_set for t in q.tags)]

        return result

    def stats(self) -> dict:
        """Get statistics about the question bank."""
        by_route: dict[str, int] = {}
        by_entity: dict[str, int] = {}

        for q in self.questions:
            route = q.expected_route.value
            by_route[route] = by_route.get(route, 0) + 1

            entity = q.expected_entity.value if q.expected_entity else "none"
            by_entity[entity] = by_entity.get(entity, 0) + 1

        return {
            "total": len(self.questions),
            "by_route": by_route,
            "by_entity": by_entity,
            "with_block_expectations": len(
                [q for q in self.questions if q.expected_block_contains]
            ),
        }

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self):
        return iter(self.questions)


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def load_questions(path: str | Path) -> QuestionBank:
    """
    Load questions from file.

    Convenience function.
    """
    return QuestionBank.from_file(path)


def create_question(
    query: str,
    expected_route: Route,
    expected_entity: Optional[Entity] = None,
    expected_block_contains: Optional[list[str]] = None,
    tags: Optional[list[str]] = None,
    question_id: Optional[str] = None,
) -> RoutingQuestion:
    """
    Create a new question.

    Args:
        query: Question text
        expected_route: Route the answer should come from
        expected_entity: Entity the classifier should detect
        expected_block_contains: Fragments the deterministic block must contain
        tags: Question tags
        question_id: Custom ID (derived from the text if not provided)

    Returns:
        RoutingQuestion instance
    """
    if question_id is None:
        question_id = f"q_{hashlib.md5(query.encode()).hexdigest()[:8]}"

    return RoutingQuestion(
        id=question_id,
        query=query,
        expected_route=expected_route,
        expected_entity=expected_entity,
        expected_block_contains=expected_block_contains or [],
        tags=tags or [],
    )


def create_sample_questions() -> QuestionBank:
    """
    Create a small question bank covering every route.

    Returns:
        QuestionBank with sample questions
    """
    questions = [
        create_question(
            "How do I format my EBO citations in MLA?",
            Route.EBO_ESSAY_ASSISTANT,
            Entity.EBO,
            tags=["redirect"],
        ),
        create_question(
            "Can I use a blog post as a source for my essay?",
            Route.EBO_ESSAY_ASSISTANT,
            Entity.ESSAY,
            tags=["redirect"],
        ),
        create_question(
            "When is the essay due?",
            Route.DETERMINISTIC_DUE,
            Entity.ESSAY,
            tags=["deterministic"],
        ),
        create_question(
            "When is the E.B.O. due and how much is it worth?",
            Route.DETERMINISTIC_DUE,
            Entity.EBO,
            tags=["deterministic", "precedence"],
        ),
        create_question(
            "What is the EBO about?",
            Route.MODEL,
            Entity.EBO,
            tags=["fallback"],
        ),
        create_question(
            "Who teaches this course?",
            Route.GENERAL_ASSISTANT,
            None,
            tags=["fallback"],
        ),
    ]

    return QuestionBank(questions)
