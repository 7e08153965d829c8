"""
App Module - HTTP boundary for the syllabus assistant.
======================================================

Provides a FastAPI application exposing:
- POST / for questions (plain-text answers)
- OPTIONS / for CORS preflight
- GET /health for document status

Components:
- http_api: Application factory and module-level app

Usage:
    Run with: uvicorn syllabus_assistant.app.http_api:app
    Or use: syllabus-assistant serve
"""

# Note: http_api builds the app at import time; import it explicitly
# so that importing the package does not load settings.

__all__ = []
