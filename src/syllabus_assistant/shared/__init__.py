"""
Shared Module - Common utilities, configuration, schemas, and logging.
======================================================================

This module provides foundational components used across all other modules:

- config: Configuration loading and management
- logging: Structured logging setup
- schemas: Pydantic data models
- errors: Exception hierarchy
- utils: Utility functions (hashing, file I/O, etc.)
"""

from syllabus_assistant.shared.config import get_settings, reload_settings, Settings
from syllabus_assistant.shared.logging import get_logger, setup_logging
from syllabus_assistant.shared.errors import (
    AssistantError,
    CompletionServiceError,
    MissingConfigurationError,
    RequestValidationError,
)
from syllabus_assistant.shared.schemas import (
    AssistantAnswer,
    Entity,
    ExtractedBlock,
    Intent,
    IntentSignals,
    Route,
    RoutingDecision,
    Section,
)
from syllabus_assistant.shared.utils import (
    compute_hash,
    dedupe_preserve_order,
    load_json,
    read_text_safe,
    save_json,
    truncate_text,
)

__all__ = [
    # Config
    "get_settings",
    "reload_settings",
    "Settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Errors
    "AssistantError",
    "CompletionServiceError",
    "MissingConfigurationError",
    "RequestValidationError",
    # Schemas
    "AssistantAnswer",
    "Entity",
    "ExtractedBlock",
    "Intent",
    "IntentSignals",
    "Route",
    "RoutingDecision",
    "Section",
    # Utils
    "compute_hash",
    "dedupe_preserve_order",
    "load_json",
    "read_text_safe",
    "save_json",
    "truncate_text",
]
