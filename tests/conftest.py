"""
Pytest Configuration and Fixtures.
===================================

Shared fixtures for all test modules:
- Sample syllabus documents
- Temporary files
- Stub completion service and recording analytics sink
- Settings and assistant factories
"""

import os
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest

# Keep tests offline and independent of a developer's .env
for _var in (
    "OPENAI_API_KEY",
    "QUALTRICS_API_TOKEN",
    "QUALTRICS_SURVEY_ID",
    "QUALTRICS_DATACENTER",
    "CONTENT_FILE",
    "COURSE_PAGE",
    "ASSISTANT_URL",
    "OPENAI_MODEL",
):
    os.environ.pop(_var, None)


LESSON_URL_1 = "https://westernu.brightspace.com/d2l/le/lessons/130641/units/1987"
LESSON_URL_2 = "https://westernu.brightspace.com/d2l/le/lessons/130641/topics/2002"


# ─────────────────────────────────────────────────────────────────────────────
# Path Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return project_root / "config" / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Sample Document Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def essay_scenario_doc() -> str:
    """Essay due dates plus a separate extensions section."""
    return (
        "## Essay Due Dates\n"
        "The essay is due Friday, March 14th at 11:59pm. Late submissions lose 10% per day.\n"
        "\n"
        "## Extensions\n"
        "Contact the instructor for medical accommodations."
    )


@pytest.fixture
def sample_syllabus() -> str:
    """A small syllabus with EBO and essay sections, links and superscripts."""
    return f"""# Course Syllabus

Welcome to the course.

## EBO Overview

The Exploratory Bibliography (EBO) asks for six annotated sources.
Instructions: {LESSON_URL_2}

## EBO Due Dates

The EBO is due Friday, February 7^th^ at 11:59 pm.
It is worth 15% of your final grade.
Late submissions lose 5% per day.
See {LESSON_URL_1} and {LESSON_URL_1}

## Essay Due Dates

The essay is due Friday, March 14th at 11:59pm. Late submissions lose 10% per day.

## Extensions

Contact the instructor for medical accommodations.

## Office Hours

Tuesdays 2:00 pm in the History office.
"""


@pytest.fixture
def syllabus_file(temp_dir: Path, sample_syllabus: str) -> Path:
    """Sample syllabus written to a temporary file."""
    path = temp_dir / "syllabus.md"
    path.write_text(sample_syllabus, encoding="utf-8")
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Stubs
# ─────────────────────────────────────────────────────────────────────────────


class StubCompletionService:
    """Records calls and returns a canned reply (or raises)."""

    def __init__(self, reply: str = "According to the syllabus, it is covered.", error=None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_context: str, user_query: str) -> str:
        self.calls.append((system_context, user_query))
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingSink:
    """Analytics sink that remembers every record call."""

    def __init__(self, status: str = "Qualtrics status: 200"):
        self.status = status
        self.records: list[tuple[str, str, object]] = []

    def record(self, response_text: str, query_text: str, route) -> str:
        self.records.append((response_text, query_text, route))
        return self.status


@pytest.fixture
def stub_delegate() -> StubCompletionService:
    """Completion service stub with a canned reply."""
    return StubCompletionService()


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Analytics sink stub."""
    return RecordingSink()


# ─────────────────────────────────────────────────────────────────────────────
# Settings and Assistant Factories
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_settings():
    """Build a Settings object from defaults plus overrides, skipping YAML."""
    from syllabus_assistant.shared.config import Settings

    def factory(**overrides):
        return Settings(**overrides)

    return factory


@pytest.fixture
def make_assistant(syllabus_file: Path, recording_sink: RecordingSink):
    """Build an Assistant over a document with injected stubs."""
    from syllabus_assistant.ingestion.loader import DocumentStore
    from syllabus_assistant.rag.pipeline import Assistant

    def factory(
        path: Optional[Path] = None,
        delegate=None,
        analytics=None,
        **components,
    ):
        return Assistant(
            store=DocumentStore(path or syllabus_file),
            delegate=delegate,
            analytics=analytics if analytics is not None else recording_sink,
            **components,
        )

    return factory


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "requires_api: marks tests that require API keys"
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singletons between tests."""
    import syllabus_assistant.rag.extractor as extractor_module
    import syllabus_assistant.rag.intents as intents_module
    import syllabus_assistant.rag.pipeline as pipeline_module
    import syllabus_assistant.rag.selector as selector_module
    from syllabus_assistant.shared.config import get_settings

    def reset():
        intents_module._classifier = None
        selector_module._selector = None
        extractor_module._extractor = None
        pipeline_module._assistant = None
        get_settings.cache_clear()

    reset()
    yield
    reset()
