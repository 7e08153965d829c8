"""
Ingestion Module - Load, normalize and sectionize the course syllabus.
======================================================================

This module turns the raw syllabus file into matchable structure:

- loader: Cached, read-only access to the source document
- cleaner: Query normalization and superscript cleanup
- sectionizer: Heading-delimited sections with lesson links

Pipeline flow:
    syllabus.md → DocumentStore → Sectionizer → Sections
"""

from syllabus_assistant.ingestion.cleaner import (
    TextCleaner,
    cleanup_superscripts,
    normalize_text,
)
from syllabus_assistant.ingestion.sectionizer import (
    Sectionizer,
    SectionizerConfig,
    render_sections,
    split_sections,
)
from syllabus_assistant.ingestion.loader import DocumentStore, LoadedDocument

__all__ = [
    # Cleaner
    "TextCleaner",
    "cleanup_superscripts",
    "normalize_text",
    # Sectionizer
    "Sectionizer",
    "SectionizerConfig",
    "render_sections",
    "split_sections",
    # Loader
    "DocumentStore",
    "LoadedDocument",
]
