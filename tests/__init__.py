"""
Tests Package - Unit and integration tests for the Syllabus Assistant.
======================================================================

Test modules:
- test_ingestion: Cleaner, sectionizer and document store tests
- test_rag: Classifier, selector, extractor, composer, delegate, pipeline tests
- test_api: HTTP boundary tests
- test_evaluation: Question bank, metrics and runner tests
- test_config: Settings, logging and utils tests
- test_cli: Offline CLI command tests

Run tests with:
    pytest tests/
    pytest tests/ -v -m "not integration"
"""
