"""
Generator Module - Completion delegate for the generative fallback.
===================================================================

The generative service is an opaque collaborator behind a one-method
interface, so routing and extraction can be exercised fully offline with
a stub:

    complete(system_context, user_query) -> text

The OpenAI implementation:
- sends a two-message conversation (system, user)
- makes a single attempt (no retries)
- raises CompletionServiceError on any SDK error or unexpected shape
- returns "" when the model produced no content
"""

from typing import Optional, Protocol, runtime_checkable

import openai

from syllabus_assistant.shared.config import DEFAULT_MODEL
from syllabus_assistant.shared.errors import CompletionServiceError, MissingConfigurationError
from syllabus_assistant.shared.logging import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Delegate Interface
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class CompletionService(Protocol):
    """Anything that turns (system context, user query) into text."""

    def complete(self, system_context: str, user_query: str) -> str:
        ...


# ─────────────────────────────────────────────────────────────────────────────
# OpenAI Implementation
# ─────────────────────────────────────────────────────────────────────────────


class OpenAICompletionService:
    """
    Chat-completions delegate backed by the OpenAI SDK.

    Example:
        >>> service = OpenAICompletionService(api_key="sk-...")
        >>> service.complete("Use ONLY the text below...", "When is the EBO due?")
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        temperature: Optional[float] = None,
    ):
        """
        Initialize the delegate.

        Args:
            api_key: OpenAI API key
            model: Model identifier
            timeout: Request timeout in seconds
            temperature: Sampling temperature (None uses the model default)
        """
        if not api_key:
            raise MissingConfigurationError()

        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self._client: Optional[openai.OpenAI] = None

        logger.info(f"Completion service initialized: model={self.model}")

    @classmethod
    def from_settings(cls, settings) -> "OpenAICompletionService":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.generation.timeout,
            temperature=settings.generation.temperature,
        )

    @property
    def client(self) -> openai.OpenAI:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
            logger.debug("OpenAI client initialized")
        return self._client

    def complete(self, system_context: str, user_query: str) -> str:
        """
        Run one chat completion.

        Args:
            system_context: System instruction with embedded materials
            user_query: The student's question

        Returns:
            Completion text, "" if the model returned no content

        Raises:
            CompletionServiceError: The request failed or the response
                did not have the expected shape
        """
        params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_context},
                {"role": "user", "content": user_query},
            ],
        }
        if self.temperature is not None:
            params["temperature"] = self.temperature

        try:
            response = self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionServiceError(str(e)) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            logger.error(f"Unexpected completion response shape: {e}")
            raise CompletionServiceError("Unexpected completion response shape") from e

        return content or ""
