"""
Syllabus Assistant - Course Q&A for the EBO and Essay assessments
=================================================================

A single-endpoint question-answering service for one university course.
Questions are classified with rule-based intent predicates and routed to
exactly one of three paths:

- redirect: how-to/format/citation questions are pointed at the
  dedicated EBO & Essay assistant
- deterministic: due-date, late-penalty and extension questions are
  answered with verbatim text extracted from the markdown syllabus
- generative: everything else is answered by an LLM constrained to the
  syllabus text

Every answer ends with a disclaimer pointing to the official course page.
"""

__version__ = "0.1.0"
__author__ = "Syllabus Assistant Team"
__license__ = "MIT"

# Public API - lazy imports to avoid circular dependencies and speed up startup
__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Main modules (imported on demand)
    "shared",
    "ingestion",
    "rag",
    "evaluation",
    "app",
    "cli",
]
