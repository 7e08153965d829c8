"""
CLI Module - Command-line interface for the Syllabus Assistant.
===============================================================

Provides CLI commands for:
- Asking questions through the full pipeline
- Inspecting routing, sections and deterministic extraction
- Serving the HTTP endpoint
- Running the routing evaluation harness

Usage:
    syllabus-assistant --help
    syllabus-assistant route "When is the essay due?"
    syllabus-assistant ask "When is the EBO due?"
    syllabus-assistant serve --port 8000
    syllabus-assistant eval --questions config/questions.yaml

Components:
- main: Typer CLI application
"""

from syllabus_assistant.cli.main import app, cli

__all__ = ["app", "cli"]
