"""
Tests for RAG Module.
=====================

Tests for:
- Intents: Predicates and routing policy
- Selector: Section filtering and prioritization
- Extractor: Deterministic due-block extraction
- Composer: Answer text assembly
- Prompts: System instruction building
- Generator: OpenAI completion delegate (mocked)
- Analytics: Qualtrics sink (mocked)
- Pipeline: End-to-end routing with stubs
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from tests.conftest import RecordingSink, StubCompletionService

LESSON_URL_1 = "https://westernu.brightspace.com/d2l/le/lessons/130641/units/1987"
LESSON_URL_2 = "https://westernu.brightspace.com/d2l/le/lessons/130641/topics/2002"

ESSAY_BLOCK = (
    "The essay is due Friday, March 14th at 11:59pm. Late submissions lose 10% per day.\n"
    "\n"
    "Contact the instructor for medical accommodations."
)


# ─────────────────────────────────────────────────────────────────────────────
# Intent Tests
# ─────────────────────────────────────────────────────────────────────────────


ROUTING_CASES = [
    ("How do I format my EBO citations in MLA?", "EBO_ESSAY_ASSISTANT", "ebo"),
    ("What are the requirements for the essay?", "EBO_ESSAY_ASSISTANT", "essay"),
    ("Should I use scholarly sources for my essay?", "EBO_ESSAY_ASSISTANT", "essay"),
    ("When is the essay due?", "DETERMINISTIC_DUE", "essay"),
    ("When is the EBO due?", "DETERMINISTIC_DUE", "ebo"),
    ("What is the late penalty for the essay?", "DETERMINISTIC_DUE", "essay"),
    ("When is the E.B.O. due?", "DETERMINISTIC_DUE", "ebo"),
    ("What's the deadline for the exploratory bibliography?", "DETERMINISTIC_DUE", "ebo"),
    ("When is the EBO due and how do I format it?", "DETERMINISTIC_DUE", "ebo"),
    ("What topics does the essay cover?", "MODEL", "essay"),
    ("How much is the EBO worth?", "MODEL", "ebo"),
    ("What are the course office hours?", "GENERAL_ASSISTANT", None),
    ("Where can I find the ebook?", "GENERAL_ASSISTANT", None),
    ("When is the midterm due?", "GENERAL_ASSISTANT", None),
]


class TestIntents:
    """Tests for rule-based classification."""

    @pytest.mark.parametrize("query,route,entity", ROUTING_CASES)
    def test_routing_scenarios(self, query: str, route: str, entity):
        """Test representative queries land on the expected route."""
        from syllabus_assistant.rag.intents import IntentClassifier

        decision = IntentClassifier().route(query)

        assert decision.route.value == route
        assert (decision.entity.value if decision.entity else None) == entity

    def test_ebo_wins_over_essay(self):
        """Test a query naming both assessments is an EBO query."""
        from syllabus_assistant.rag.intents import IntentClassifier
        from syllabus_assistant.shared.schemas import Entity

        classifier = IntentClassifier()
        query = "Is the EBO due before the essay?"

        assert classifier.mentions_ebo(query)
        assert not classifier.mentions_essay_only(query)
        assert classifier.detect_entity(query) is Entity.EBO

    def test_logistics_overrides_instruction(self):
        """Test a date question is never redirected, even with formatting cues."""
        from syllabus_assistant.rag.intents import IntentClassifier
        from syllabus_assistant.shared.schemas import Intent

        classifier = IntentClassifier()
        query = "What is the submission deadline for the essay format check?"

        assert classifier.is_instruction(query)
        assert classifier.is_logistics(query)
        assert classifier.route(query).intent is Intent.DETERMINISTIC_LOGISTICS

    def test_case_and_whitespace_insensitive(self):
        """Test predicates see the normalized query."""
        from syllabus_assistant.rag.intents import IntentClassifier

        classifier = IntentClassifier()
        assert classifier.route("   WHEN IS THE ESSAY DUE?  ").route.value == "DETERMINISTIC_DUE"

    @pytest.mark.parametrize("query", [q for q, _, _ in ROUTING_CASES] + ["", "hello", "essay"])
    def test_exactly_one_route(self, query: str):
        """Test the policy assigns exactly one intent consistent with the signals."""
        from syllabus_assistant.rag.intents import IntentClassifier
        from syllabus_assistant.shared.schemas import Intent

        decision = IntentClassifier().route(query)
        s = decision.signals

        is_redirect = s.has_entity and s.instruction and not s.logistics
        is_deterministic = not is_redirect and s.has_entity and s.due

        assert (decision.intent is Intent.REDIRECT_INSTRUCTION) == is_redirect
        assert (decision.intent is Intent.DETERMINISTIC_LOGISTICS) == is_deterministic
        assert (decision.intent is Intent.GENERATIVE_FALLBACK) == (
            not is_redirect and not is_deterministic
        )

    def test_no_entity_never_deterministic_or_redirect(self):
        """Test queries without an entity always fall back."""
        from syllabus_assistant.rag.intents import IntentClassifier
        from syllabus_assistant.shared.schemas import Intent

        classifier = IntentClassifier()
        for query in ("How do I format citations?", "When is it due?", "What is late?"):
            assert classifier.route(query).intent is Intent.GENERATIVE_FALLBACK

    def test_logistics_deterministic_variant(self):
        """Test the broader cue set sends weighting questions to the extractor."""
        from syllabus_assistant.rag.intents import IntentClassifier

        narrow = IntentClassifier(deterministic_intent="due")
        broad = IntentClassifier(deterministic_intent="logistics")
        query = "How much is the EBO worth?"

        assert narrow.route(query).route.value == "MODEL"
        assert broad.route(query).route.value == "DETERMINISTIC_DUE"

    def test_source_quality_cues_toggle(self):
        """Test source-quality cues only count as instruction when enabled."""
        from syllabus_assistant.rag.intents import IntentClassifier

        query = "Are peer-reviewed sources needed for the EBO?"

        assert IntentClassifier().route(query).route.value == "EBO_ESSAY_ASSISTANT"
        assert (
            IntentClassifier(source_quality_cues=False).route(query).route.value == "MODEL"
        )

    def test_invalid_deterministic_intent(self):
        """Test an unknown cue set is rejected."""
        from syllabus_assistant.rag.intents import IntentClassifier

        with pytest.raises(ValueError):
            IntentClassifier(deterministic_intent="everything")

    def test_explain(self):
        """Test every predicate is reported by name."""
        from syllabus_assistant.rag.intents import IntentClassifier

        result = IntentClassifier().explain("When is the EBO due?")

        assert result["mentions_ebo"] is True
        assert result["due"] is True
        assert result["instruction"] is False
        assert set(result) == {
            "mentions_ebo",
            "mentions_essay",
            "instruction",
            "source_quality",
            "logistics",
            "due",
        }

    def test_predicate_extend(self):
        """Test predicates can be extended with extra patterns."""
        from syllabus_assistant.rag.intents import DEFAULT_PREDICATES, IntentClassifier

        predicates = dict(DEFAULT_PREDICATES)
        predicates["due"] = predicates["due"].extend(r"\bhand\s+in\b")
        classifier = IntentClassifier(predicates=predicates)

        assert classifier.route("When do I hand in the essay?").route.value == "DETERMINISTIC_DUE"

    def test_route_for(self):
        """Test analytics labels per intent."""
        from syllabus_assistant.rag.intents import route_for
        from syllabus_assistant.shared.schemas import Entity, Intent, Route

        assert route_for(Intent.REDIRECT_INSTRUCTION, Entity.EBO) is Route.EBO_ESSAY_ASSISTANT
        assert route_for(Intent.DETERMINISTIC_LOGISTICS, Entity.ESSAY) is Route.DETERMINISTIC_DUE
        assert route_for(Intent.GENERATIVE_FALLBACK, Entity.ESSAY) is Route.MODEL
        assert route_for(Intent.GENERATIVE_FALLBACK, None) is Route.GENERAL_ASSISTANT

    def test_classify_query_convenience(self):
        """Test the module-level convenience function."""
        from syllabus_assistant.rag.intents import classify_query, get_classifier

        assert classify_query("When is the essay due?").route.value == "DETERMINISTIC_DUE"
        assert get_classifier() is get_classifier()


# ─────────────────────────────────────────────────────────────────────────────
# Selector Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestSelector:
    """Tests for section selection."""

    def test_select_ebo_due_heading_first(self, sample_syllabus: str):
        """Test EBO sections come back with the due-headed one first."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.selector import SectionSelector
        from syllabus_assistant.shared.schemas import Entity

        pool = SectionSelector().select(split_sections(sample_syllabus), Entity.EBO)
        assert [s.heading for s in pool] == ["EBO Due Dates", "EBO Overview"]

    def test_select_essay_excludes_ebo_sections(self, sample_syllabus: str):
        """Test EBO-specific sections never answer essay questions."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.selector import select_sections
        from syllabus_assistant.shared.schemas import Entity

        pool = select_sections(split_sections(sample_syllabus), Entity.ESSAY)
        assert [s.heading for s in pool] == ["Essay Due Dates"]

    def test_document_order_kept_within_groups(self):
        """Test the due-heading partition is stable."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.selector import SectionSelector
        from syllabus_assistant.shared.schemas import Entity

        doc = (
            "## Essay A\nessay intro\n"
            "## Essay Deadline\nessay due\n"
            "## Essay B\nessay notes\n"
            "## Essay Due\nessay due again\n"
        )
        pool = SectionSelector().select(split_sections(doc), Entity.ESSAY)
        assert [s.heading for s in pool] == ["Essay Deadline", "Essay Due", "Essay A", "Essay B"]

    def test_extension_sections(self, sample_syllabus: str):
        """Test extension sections exclude the other entity and the excluded section."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.selector import SectionSelector
        from syllabus_assistant.shared.schemas import Entity

        sections = split_sections(sample_syllabus)
        selector = SectionSelector()

        related = selector.extension_sections(sections, Entity.EBO)
        assert [s.heading for s in related] == ["Extensions"]

        extensions = next(s for s in sections if s.heading == "Extensions")
        assert selector.extension_sections(sections, Entity.EBO, exclude=extensions) == []

    def test_no_sections(self):
        """Test selecting from an empty document."""
        from syllabus_assistant.rag.selector import SectionSelector
        from syllabus_assistant.shared.schemas import Entity

        assert SectionSelector().select([], Entity.EBO) == []


# ─────────────────────────────────────────────────────────────────────────────
# Extractor Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractor:
    """Tests for deterministic block extraction."""

    def test_essay_scenario(self, essay_scenario_doc: str):
        """Test due sentence, penalty and extension sentence come back verbatim."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        block = DueBlockExtractor().extract_for_entity(
            split_sections(essay_scenario_doc), Entity.ESSAY
        )

        assert block is not None
        assert block.text == ESSAY_BLOCK
        assert block.heading == "Essay Due Dates"
        assert block.entity is Entity.ESSAY

    def test_ebo_block_with_extension_and_links(self, sample_syllabus: str):
        """Test the full paragraph, superscript cleanup and section links."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        block = DueBlockExtractor().extract_for_entity(
            split_sections(sample_syllabus), Entity.EBO
        )

        assert block is not None
        assert block.lines == (
            "The EBO is due Friday, February 7th at 11:59 pm.",
            "It is worth 15% of your final grade.",
            "Late submissions lose 5% per day.",
            f"See {LESSON_URL_1} and {LESSON_URL_1}",
            "",
            "Contact the instructor for medical accommodations.",
        )
        assert block.reference_links == (LESSON_URL_1,)

    def test_deterministic(self, sample_syllabus: str):
        """Test the same text always yields the same block."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, extract_due_block

        first = DueBlockExtractor().extract(sample_syllabus)
        assert first is not None
        assert all(DueBlockExtractor().extract(sample_syllabus) == first for _ in range(3))
        assert extract_due_block(sample_syllabus) == first

    def test_first_line_is_due_statement(self):
        """Test the block starts at a due line carrying a date, not at a heading."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, looks_like_due_line

        text = "Due Dates\n\nAssignments are due on time.\nThe EBO is due May 2."
        lines = DueBlockExtractor().extract_lines(text)

        assert lines[0] == "The EBO is due May 2."
        assert looks_like_due_line(lines[0])
        assert not looks_like_due_line("Due Dates")
        assert not looks_like_due_line("Friday, March 14th")

    @pytest.mark.parametrize(
        "line",
        [
            "The EBO is due Friday.",
            "Deadline: 2025",
            "Essay due 11:59 pm",
            "Due on the 7th",
            "Final deadline is in December",
        ],
    )
    def test_due_line_date_forms(self, line: str):
        """Test each date-ish form qualifies a due line."""
        from syllabus_assistant.rag.extractor import looks_like_due_line

        assert looks_like_due_line(line)

    def test_no_due_line(self):
        """Test text without a dated due statement yields nothing."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor

        extractor = DueBlockExtractor()
        assert extractor.extract("## EBO\nThe EBO is due soon.") is None
        assert extractor.extract("") is None

    def test_paragraph_cap(self):
        """Test the captured paragraph is capped."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, ExtractorConfig

        text = "The essay is due March 14.\n" + "\n".join(["More detail here."] * 20)
        lines = DueBlockExtractor(ExtractorConfig(max_paragraph_lines=12)).extract_lines(text)

        assert len(lines) == 12

    def test_continuation_after_capped_paragraph(self):
        """Test penalty lines past the paragraph cap are taken, up to their own cap."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, ExtractorConfig

        text = "The essay is due March 14.\n" + "\n".join(["Late work loses marks."] * 20)
        config = ExtractorConfig(max_paragraph_lines=2, max_continuation_lines=3)
        lines = DueBlockExtractor(config).extract_lines(text)

        assert lines == ["The essay is due March 14."] + ["Late work loses marks."] * 4

    def test_continuation_stops_at_blank_line(self):
        """Test later paragraphs with numbers or dates are never pulled in."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, ExtractorConfig

        text = (
            "The essay is due Friday, March 14th at 11:59pm.\n\n"
            "The essay must be 1500 words and you may use MLA.\n\n"
            "Topics are listed in week 3."
        )
        expected = "The essay is due Friday, March 14th at 11:59pm."

        assert DueBlockExtractor().extract(text) == expected
        assert DueBlockExtractor(ExtractorConfig(max_paragraph_lines=1)).extract(text) == expected

    def test_continuation_stops_at_heading(self):
        """Test continuation never crosses a heading."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor

        text = "The essay is due March 14.\n\n## Next\nLate work loses marks."
        assert DueBlockExtractor().extract(text) == "The essay is due March 14."

    def test_continuation_stops_at_unrelated_line(self):
        """Test continuation stops at the first non-penalty, non-date line."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor, ExtractorConfig

        text = (
            "The essay is due March 14.\n"
            "Late work loses marks.\n"
            "Some unrelated words here.\n"
            "Late work loses more marks."
        )
        result = DueBlockExtractor(ExtractorConfig(max_paragraph_lines=1)).extract(text)

        assert result == "The essay is due March 14.\nLate work loses marks."

    def test_extension_paragraph_in_section(self):
        """Test extension paragraphs elsewhere in the section are appended."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor

        text = (
            "Essay Due Dates\n\n"
            "The essay is due March 14.\n\n"
            "Some unrelated words here.\n\n"
            "Extensions require documentation from Academic Advising."
        )
        assert DueBlockExtractor().extract(text) == (
            "The essay is due March 14.\n\n"
            "Extensions require documentation from Academic Advising."
        )

    def test_extension_paragraph_with_penalty_line(self):
        """Test an extension paragraph that also states the penalty is kept whole."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        sections = split_sections(
            "## Essay Due Dates\n"
            "The essay is due Friday, March 14th at 11:59pm.\n"
            "\n"
            "Late submissions lose 5% per day.\n"
            "Extensions are granted for medical reasons.\n"
        )
        block = DueBlockExtractor().extract_for_entity(sections, Entity.ESSAY)

        assert block.text == (
            "The essay is due Friday, March 14th at 11:59pm.\n"
            "\n"
            "Late submissions lose 5% per day.\n"
            "Extensions are granted for medical reasons."
        )

    def test_short_extension_statement_appended(self):
        """Test a short extension line without closing punctuation is not mistaken for a heading."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        sections = split_sections(
            "## Essay Due Dates\n"
            "The essay is due Friday, March 14th at 11:59pm.\n"
            "\n"
            "Extensions need medical documentation\n"
        )
        block = DueBlockExtractor().extract_for_entity(sections, Entity.ESSAY)

        assert block.text == (
            "The essay is due Friday, March 14th at 11:59pm.\n"
            "\n"
            "Extensions need medical documentation"
        )

    def test_section_heading_not_appended(self):
        """Test heading lines carrying an extension cue are not appended."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        result = DueBlockExtractor().extract(
            "The essay is due March 14.",
            extension_text="Extensions\n\nContact the instructor for medical accommodations.",
            headings=["Extensions"],
        )
        assert result == (
            "The essay is due March 14.\n\n"
            "Contact the instructor for medical accommodations."
        )

        sections = split_sections(
            "## Essay Extensions\n"
            "The essay is due March 14.\n"
            "\n"
            "Contact the instructor for medical accommodations.\n"
        )
        block = DueBlockExtractor().extract_for_entity(sections, Entity.ESSAY)
        assert block.text == result

    def test_extension_not_duplicated(self):
        """Test an extension sentence already in the block is not repeated."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor

        text = "Essay\nThe essay is due March 14. Medical extensions need documentation."
        result = DueBlockExtractor().extract(text, headings=["Essay"])

        assert result.count("Medical extensions") == 1

    def test_no_trailing_blank_lines(self):
        """Test the block never ends with blank lines."""
        from syllabus_assistant.rag.extractor import DueBlockExtractor

        lines = DueBlockExtractor().extract_lines("The essay is due March 14.\n\n\n\n")
        assert lines == ["The essay is due March 14."]

    def test_miss_for_entity(self):
        """Test no block when the entity's sections have no due statement."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.extractor import DueBlockExtractor
        from syllabus_assistant.shared.schemas import Entity

        sections = split_sections("## Essay\nThe essay is about a topic you choose.\n")
        assert DueBlockExtractor().extract_for_entity(sections, Entity.ESSAY) is None
        assert DueBlockExtractor().extract_for_entity([], Entity.EBO) is None


# ─────────────────────────────────────────────────────────────────────────────
# Composer Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestComposer:
    """Tests for answer composition."""

    def test_disclaimer(self):
        """Test the disclaimer names the course page."""
        from syllabus_assistant.rag.composer import ComposerConfig, ResponseComposer

        composer = ResponseComposer(ComposerConfig(course_page="https://course.example/home"))
        text = composer.with_disclaimer("Body")

        assert text.startswith("Body\n\n")
        assert text.endswith("always refer to the course page: https://course.example/home")

    def test_redirect(self):
        """Test the redirect message names the other assistant."""
        from syllabus_assistant.rag.composer import ComposerConfig, ResponseComposer
        from syllabus_assistant.shared.schemas import Entity

        composer = ResponseComposer(
            ComposerConfig(assistant_url="https://helper.example", assistant_name="Helper")
        )
        text = composer.redirect(Entity.EBO)

        assert "Helper: https://helper.example" in text
        assert "EBO" in text

    def test_deterministic(self):
        """Test header, verbatim block and link list."""
        from syllabus_assistant.rag.composer import ResponseComposer
        from syllabus_assistant.shared.schemas import Entity, ExtractedBlock

        block = ExtractedBlock(
            lines=("The essay is due March 14.",),
            entity=Entity.ESSAY,
            reference_links=(LESSON_URL_1, LESSON_URL_1),
        )
        text = ResponseComposer().deterministic(block)

        assert text == (
            "According to the syllabus, the essay details are:\n\n"
            "The essay is due March 14.\n\n"
            f"Relevant course page(s):\n- {LESSON_URL_1}"
        )

    def test_deterministic_without_links(self):
        """Test no link list is rendered when there are no links."""
        from syllabus_assistant.rag.composer import ResponseComposer
        from syllabus_assistant.shared.schemas import Entity, ExtractedBlock

        block = ExtractedBlock(lines=("The EBO is due May 2.",), entity=Entity.EBO)
        text = ResponseComposer().deterministic(block)

        assert "Relevant course page" not in text
        assert text.endswith("The EBO is due May 2.")

    def test_generative_moves_inline_links(self):
        """Test inline lesson links are replaced by the appended list."""
        from syllabus_assistant.rag.composer import ResponseComposer

        completion = f"See [the unit]({LESSON_URL_1}) for details. Also {LESSON_URL_1}"
        text = ResponseComposer().generative(completion, [LESSON_URL_1])

        assert text == (
            "See the unit for details. Also\n\n"
            f"Relevant course page(s):\n- {LESSON_URL_1}"
        )

    def test_generative_keeps_text_without_links(self):
        """Test the completion is untouched when there is nothing to append."""
        from syllabus_assistant.rag.composer import ResponseComposer

        completion = f"See {LESSON_URL_1}"
        assert ResponseComposer().generative(completion, []) == completion

    def test_generative_strip_disabled(self):
        """Test link stripping can be turned off."""
        from syllabus_assistant.rag.composer import ComposerConfig, ResponseComposer

        composer = ResponseComposer(ComposerConfig(strip_inline_links=False))
        completion = f"See {LESSON_URL_1}"
        assert composer.generative(completion, [LESSON_URL_1]) == completion

    def test_generative_empty_completion(self):
        """Test an empty completion becomes the placeholder."""
        from syllabus_assistant.rag.composer import NO_RESPONSE, ResponseComposer

        assert ResponseComposer().generative("   ") == NO_RESPONSE


# ─────────────────────────────────────────────────────────────────────────────
# Prompt Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestPrompts:
    """Tests for prompt building."""

    def test_prompt_uses_matched_sections(self, essay_scenario_doc: str):
        """Test materials are the matched sections when there are any."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.prompts import build_prompt

        sections = split_sections(essay_scenario_doc)[:1]
        system, user = build_prompt("Is there a rubric?", "Essay", sections, essay_scenario_doc)

        assert user == "Is there a rubric?"
        assert "exclusively about the Essay" in system
        assert "## Essay Due Dates" in system
        assert "medical accommodations" not in system

    def test_prompt_falls_back_to_document(self, essay_scenario_doc: str):
        """Test the whole document is embedded when no section matched."""
        from syllabus_assistant.rag.prompts import PromptBuilder

        system, _ = PromptBuilder().build_prompt("Hi", "EBO and Essay", [], essay_scenario_doc)
        assert "medical accommodations" in system

    def test_document_scope(self, essay_scenario_doc: str):
        """Test the document scope ignores matched sections."""
        from syllabus_assistant.ingestion.sectionizer import split_sections
        from syllabus_assistant.rag.prompts import PromptBuilder

        sections = split_sections(essay_scenario_doc)[:1]
        materials = PromptBuilder("document").select_materials(sections, essay_scenario_doc)
        assert materials == essay_scenario_doc.strip()

    def test_grounding_rules(self):
        """Test the instruction forbids invented dates."""
        from syllabus_assistant.rag.prompts import NO_MATERIALS, PromptBuilder

        system = PromptBuilder().build_system_prompt("EBO", "")

        assert "Use ONLY the text in the materials" in system
        assert "Do not invent dates or deadlines" in system
        assert NO_MATERIALS in system

    def test_invalid_scope(self):
        """Test an unknown context scope is rejected."""
        from syllabus_assistant.rag.prompts import PromptBuilder

        with pytest.raises(ValueError):
            PromptBuilder("everything")


# ─────────────────────────────────────────────────────────────────────────────
# Generator Tests
# ─────────────────────────────────────────────────────────────────────────────


def _completion_response(content):
    message = Mock(content=content)
    return Mock(choices=[Mock(message=message)])


class TestGenerator:
    """Tests for the OpenAI completion delegate (mocked)."""

    def test_missing_key(self):
        """Test an empty key is a configuration error."""
        from syllabus_assistant.rag.generator import OpenAICompletionService
        from syllabus_assistant.shared.errors import MissingConfigurationError

        with pytest.raises(MissingConfigurationError):
            OpenAICompletionService(api_key="")

    def test_complete(self):
        """Test a two-message request and the returned content."""
        from syllabus_assistant.rag.generator import CompletionService, OpenAICompletionService

        service = OpenAICompletionService(api_key="sk-test", model="gpt-test")
        service._client = Mock()
        service._client.chat.completions.create.return_value = _completion_response("Answer")

        assert isinstance(service, CompletionService)
        assert service.complete("System text", "User text") == "Answer"

        kwargs = service._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"] == [
            {"role": "system", "content": "System text"},
            {"role": "user", "content": "User text"},
        ]
        assert "temperature" not in kwargs

    def test_temperature_passed_when_set(self):
        """Test the temperature is sent only when configured."""
        from syllabus_assistant.rag.generator import OpenAICompletionService

        service = OpenAICompletionService(api_key="sk-test", temperature=0.2)
        service._client = Mock()
        service._client.chat.completions.create.return_value = _completion_response("x")

        service.complete("s", "u")
        assert service._client.chat.completions.create.call_args.kwargs["temperature"] == 0.2

    def test_empty_content(self):
        """Test a missing content field becomes an empty string."""
        from syllabus_assistant.rag.generator import OpenAICompletionService

        service = OpenAICompletionService(api_key="sk-test")
        service._client = Mock()
        service._client.chat.completions.create.return_value = _completion_response(None)

        assert service.complete("s", "u") == ""

    def test_sdk_error(self):
        """Test SDK errors surface as CompletionServiceError."""
        import openai

        from syllabus_assistant.rag.generator import OpenAICompletionService
        from syllabus_assistant.shared.errors import CompletionServiceError

        service = OpenAICompletionService(api_key="sk-test")
        service._client = Mock()
        service._client.chat.completions.create.side_effect = openai.OpenAIError("boom")

        with pytest.raises(CompletionServiceError):
            service.complete("s", "u")

    def test_unexpected_shape(self):
        """Test a response without choices is a service error."""
        from syllabus_assistant.rag.generator import OpenAICompletionService
        from syllabus_assistant.shared.errors import CompletionServiceError

        service = OpenAICompletionService(api_key="sk-test")
        service._client = Mock()
        service._client.chat.completions.create.return_value = Mock(choices=[])

        with pytest.raises(CompletionServiceError):
            service.complete("s", "u")

    def test_from_settings(self, make_settings):
        """Test the delegate picks up model and timeout from settings."""
        from syllabus_assistant.rag.generator import OpenAICompletionService

        settings = make_settings(
            openai_api_key="sk-test",
            openai_model="gpt-other",
            generation={"timeout": 5.0},
        )
        service = OpenAICompletionService.from_settings(settings)

        assert service.model == "gpt-other"
        assert service.timeout == 5.0


# ─────────────────────────────────────────────────────────────────────────────
# Analytics Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestAnalytics:
    """Tests for the analytics sinks."""

    def test_null_sink(self):
        """Test the null sink reports it was not called."""
        from syllabus_assistant.rag.analytics import NullSink
        from syllabus_assistant.shared.schemas import Route

        assert NullSink().record("a", "q", Route.MODEL) == "Qualtrics not called"

    def test_qualtrics_url_and_headers(self):
        """Test endpoint URL and session headers."""
        from syllabus_assistant.rag.analytics import QualtricsSink

        sink = QualtricsSink("token-1", "SV_123", "ca1")

        assert sink.url == "https://ca1.qualtrics.com/API/v3/surveys/SV_123/responses"
        assert sink.session.headers["X-API-TOKEN"] == "token-1"
        assert sink.session.headers["Content-Type"] == "application/json"

    def test_record_posts_payload(self):
        """Test the survey response carries answer, query and route."""
        from syllabus_assistant.rag.analytics import QualtricsSink
        from syllabus_assistant.shared.schemas import Route

        sink = QualtricsSink("token-1", "SV_123", "ca1", timeout=3.0)
        sink._session = Mock()
        sink._session.post.return_value = Mock(status_code=200, ok=True)

        status = sink.record("Answer", "Question?", Route.DETERMINISTIC_DUE)

        assert status == "Qualtrics status: 200"
        args, kwargs = sink._session.post.call_args
        assert args[0] == sink.url
        assert kwargs["json"] == {
            "values": {
                "responseText": "Answer",
                "queryText": "Question?",
                "routedTo": "DETERMINISTIC_DUE",
            }
        }
        assert kwargs["timeout"] == 3.0

    def test_record_non_2xx(self):
        """Test an error status is reported, not raised."""
        from syllabus_assistant.rag.analytics import QualtricsSink
        from syllabus_assistant.shared.schemas import Route

        sink = QualtricsSink("t", "s", "d")
        sink._session = Mock()
        sink._session.post.return_value = Mock(status_code=401, ok=False)

        assert sink.record("a", "q", Route.MODEL) == "Qualtrics status: 401"

    def test_record_network_error(self):
        """Test network failures never propagate."""
        import requests

        from syllabus_assistant.rag.analytics import STATUS_ERROR, QualtricsSink
        from syllabus_assistant.shared.schemas import Route

        sink = QualtricsSink("t", "s", "d")
        sink._session = Mock()
        sink._session.post.side_effect = requests.ConnectionError("down")

        assert sink.record("a", "q", Route.MODEL) == STATUS_ERROR

    def test_create_sink(self, make_settings):
        """Test Qualtrics is enabled only with all three credentials."""
        from syllabus_assistant.rag.analytics import NullSink, QualtricsSink, create_sink

        assert isinstance(create_sink(make_settings()), NullSink)
        assert isinstance(
            create_sink(make_settings(qualtrics_api_token="t", qualtrics_survey_id="s")),
            NullSink,
        )

        sink = create_sink(
            make_settings(
                qualtrics_api_token="t",
                qualtrics_survey_id="SV_1",
                qualtrics_datacenter="ca1",
            )
        )
        assert isinstance(sink, QualtricsSink)
        assert sink.survey_id == "SV_1"


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestPipeline:
    """Tests for the end-to-end assistant with stubbed collaborators."""

    def test_redirect(self, make_assistant, stub_delegate: StubCompletionService):
        """Test instruction questions get the redirect message."""
        from syllabus_assistant.shared.schemas import Route

        answer = make_assistant(delegate=stub_delegate).answer(
            "How do I format my EBO citations in MLA?"
        )

        assert answer.route is Route.EBO_ESSAY_ASSISTANT
        assert "EBO & Essay Assistant" in answer.text
        assert "always refer to the course page" in answer.text
        assert stub_delegate.calls == []

    def test_deterministic_essay(self, make_assistant, stub_delegate: StubCompletionService):
        """Test a due question is answered verbatim without the model."""
        from syllabus_assistant.shared.schemas import Route

        answer = make_assistant(delegate=stub_delegate).answer("When is the essay due?")

        assert answer.route is Route.DETERMINISTIC_DUE
        assert answer.block is not None
        assert answer.block.text == ESSAY_BLOCK
        assert answer.text.startswith("According to the syllabus, the essay details are:\n\n")
        assert ESSAY_BLOCK in answer.text
        assert stub_delegate.calls == []

    def test_deterministic_ebo_links(self, make_assistant):
        """Test the EBO block carries its section's links and cleaned superscripts."""
        answer = make_assistant().answer("When is the EBO due?")

        assert "February 7th at 11:59 pm" in answer.text
        assert f"Relevant course page(s):\n- {LESSON_URL_1}" in answer.text
        assert answer.reference_links == [LESSON_URL_1]

    def test_redirect_and_deterministic_need_no_key(self, make_assistant):
        """Test only the generative path needs a completion service."""
        assistant = make_assistant(delegate=None)

        assert assistant.answer("How do I format my essay?").route.value == "EBO_ESSAY_ASSISTANT"
        assert assistant.answer("When is the essay due?").route.value == "DETERMINISTIC_DUE"

    def test_fallback_on_extraction_miss(self, make_assistant, temp_dir: Path):
        """Test a deterministic miss falls through to the model."""
        from syllabus_assistant.shared.schemas import Intent, Route

        path = temp_dir / "nodates.md"
        path.write_text("## Essay\nThe essay is about a topic you choose.\n", encoding="utf-8")
        delegate = StubCompletionService(reply="I cannot find it in the provided materials.")

        answer = make_assistant(path=path, delegate=delegate).answer("When is the essay due?")

        assert answer.route is Route.MODEL
        assert answer.decision.intent is Intent.GENERATIVE_FALLBACK
        assert answer.block is None
        assert len(delegate.calls) == 1
        system, user = delegate.calls[0]
        assert "exclusively about the Essay" in system
        assert user == "When is the essay due?"
        assert answer.text.startswith("I cannot find it in the provided materials.")

    def test_missing_document_falls_back(self, make_assistant, temp_dir: Path):
        """Test a missing source document means no deterministic candidates."""
        delegate = StubCompletionService()
        answer = make_assistant(path=temp_dir / "missing.md", delegate=delegate).answer(
            "When is the EBO due?"
        )

        assert answer.route.value == "MODEL"
        assert len(delegate.calls) == 1

    def test_generative_without_key(self, make_assistant):
        """Test the generative path without a delegate is a configuration error."""
        from syllabus_assistant.shared.errors import MissingConfigurationError

        with pytest.raises(MissingConfigurationError) as exc_info:
            make_assistant(delegate=None).answer("What are the office hours?")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Missing OpenAI API key"

    def test_general_assistant_uses_document(self, make_assistant, sample_syllabus: str):
        """Test entity-free questions get the whole document and both scopes."""
        delegate = StubCompletionService()
        answer = make_assistant(delegate=delegate).answer("What are the office hours?")

        assert answer.route.value == "GENERAL_ASSISTANT"
        system, _ = delegate.calls[0]
        assert "exclusively about the EBO and Essay" in system
        assert "Tuesdays 2:00 pm" in system

    def test_generative_appends_section_links(self, make_assistant):
        """Test matched section links replace inline links in the completion."""
        delegate = StubCompletionService(reply=f"The EBO asks for sources. See {LESSON_URL_2}")
        answer = make_assistant(delegate=delegate).answer("What is the EBO about?")

        assert answer.route.value == "MODEL"
        assert answer.reference_links == [LESSON_URL_1, LESSON_URL_2]
        assert answer.text.startswith(
            "The EBO asks for sources. See\n\n"
            f"Relevant course page(s):\n- {LESSON_URL_1}\n- {LESSON_URL_2}"
        )

    def test_completion_failure_placeholder(self, make_assistant):
        """Test a failed completion becomes the placeholder answer."""
        from syllabus_assistant.rag.composer import NO_RESPONSE
        from syllabus_assistant.shared.errors import CompletionServiceError

        delegate = StubCompletionService(error=CompletionServiceError("timeout"))
        answer = make_assistant(delegate=delegate).answer("What are the office hours?")

        assert answer.text.startswith(NO_RESPONSE)

    def test_empty_completion_placeholder(self, make_assistant):
        """Test an empty completion becomes the placeholder answer."""
        from syllabus_assistant.rag.composer import NO_RESPONSE

        answer = make_assistant(delegate=StubCompletionService(reply="")).answer(
            "What are the office hours?"
        )
        assert answer.text.startswith(NO_RESPONSE)

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_missing_query(self, make_assistant, recording_sink: RecordingSink, query):
        """Test blank queries are rejected before anything else runs."""
        from syllabus_assistant.shared.errors import RequestValidationError

        delegate = StubCompletionService()
        with pytest.raises(RequestValidationError) as exc_info:
            make_assistant(delegate=delegate).answer(query)

        assert exc_info.value.message == "Missing query"
        assert exc_info.value.status_code == 400
        assert delegate.calls == []
        assert recording_sink.records == []

    def test_analytics_recorded(self, make_assistant, recording_sink: RecordingSink):
        """Test each answer is recorded with its effective route."""
        from syllabus_assistant.shared.schemas import Route

        answer = make_assistant().answer("  When is the essay due?  ")

        assert recording_sink.records == [
            (answer.text, "When is the essay due?", Route.DETERMINISTIC_DUE)
        ]
        assert answer.analytics_status == "Qualtrics status: 200"

    def test_render_trailer(self, make_assistant):
        """Test the status trailer is appended as a comment."""
        answer = make_assistant().answer("When is the essay due?")

        assert answer.render().endswith("\n<!-- Qualtrics status: 200 -->")
        assert answer.render(status_trailer=False) == answer.text

    def test_every_answer_has_disclaimer(self, make_assistant):
        """Test the disclaimer footer appears on every route."""
        assistant = make_assistant(delegate=StubCompletionService())
        for query in (
            "How do I format my essay?",
            "When is the essay due?",
            "What topics does the essay cover?",
            "What are the office hours?",
        ):
            assert "There may be errors in my responses" in assistant.answer(query).text

    def test_from_settings(self, make_settings, syllabus_file: Path):
        """Test wiring from settings without credentials."""
        from syllabus_assistant.rag.analytics import NullSink
        from syllabus_assistant.rag.pipeline import Assistant

        assistant = Assistant.from_settings(
            make_settings(content_file=str(syllabus_file), course_page="https://c.example")
        )

        assert assistant.delegate is None
        assert isinstance(assistant.analytics, NullSink)
        answer = assistant.answer("When is the essay due?")
        assert answer.text.endswith("https://c.example")
        assert answer.analytics_status == "Qualtrics not called"

    def test_from_settings_with_key(self, make_settings, syllabus_file: Path):
        """Test a configured key enables the OpenAI delegate."""
        from syllabus_assistant.rag.generator import OpenAICompletionService
        from syllabus_assistant.rag.pipeline import Assistant

        assistant = Assistant.from_settings(
            make_settings(content_file=str(syllabus_file), openai_api_key="sk-test")
        )
        assert isinstance(assistant.delegate, OpenAICompletionService)

    def test_logistics_mode_from_settings(self, make_settings, syllabus_file: Path):
        """Test the configured cue set reaches the classifier."""
        from syllabus_assistant.rag.pipeline import Assistant

        assistant = Assistant.from_settings(
            make_settings(
                content_file=str(syllabus_file),
                classification={"deterministic_intent": "logistics"},
            )
        )
        answer = assistant.answer("How much is the EBO worth?")

        assert answer.route.value == "DETERMINISTIC_DUE"
        assert "It is worth 15% of your final grade." in answer.text
