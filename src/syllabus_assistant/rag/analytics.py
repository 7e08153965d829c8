"""
Analytics Module - Optional Qualtrics response logging.
=======================================================

Each answered query can be recorded as a survey response carrying the
answer text, the query text and the route label. The sink is strictly
best-effort: it never raises, and its only output is a short status
string that the HTTP layer may append to the response as a comment.
"""

from typing import Optional, Protocol

import requests

from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Route

logger = get_logger(__name__)


STATUS_NOT_CALLED = "Qualtrics not called"
STATUS_ERROR = "Qualtrics error"

QUALTRICS_URL_TEMPLATE = "https://{datacenter}.qualtrics.com/API/v3/surveys/{survey_id}/responses"


class AnalyticsSink(Protocol):
    """Records one answered query; returns a status string, never raises."""

    def record(self, response_text: str, query_text: str, route: Route) -> str:
        ...


class NullSink:
    """Sink used when analytics credentials are not configured."""

    def record(self, response_text: str, query_text: str, route: Route) -> str:
        return STATUS_NOT_CALLED


class QualtricsSink:
    """
    Posts survey responses to the Qualtrics v3 API.

    Example:
        >>> sink = QualtricsSink(api_token, "SV_123", "ca1")
        >>> sink.record("The EBO is due...", "When is the EBO due?", Route.DETERMINISTIC_DUE)
        'Qualtrics status: 200'
    """

    def __init__(
        self,
        api_token: str,
        survey_id: str,
        datacenter: str,
        timeout: float = 10.0,
    ):
        self.api_token = api_token
        self.survey_id = survey_id
        self.datacenter = datacenter
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    @property
    def url(self) -> str:
        return QUALTRICS_URL_TEMPLATE.format(
            datacenter=self.datacenter,
            survey_id=self.survey_id,
        )

    @property
    def session(self) -> requests.Session:
        """Get or create the requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(
                {
                    "Content-Type": "application/json",
                    "X-API-TOKEN": self.api_token,
                }
            )
        return self._session

    def record(self, response_text: str, query_text: str, route: Route) -> str:
        """
        Record one answered query.

        Args:
            response_text: Full answer text
            query_text: The user's question
            route: Route label that produced the answer

        Returns:
            "Qualtrics status: <code>" or "Qualtrics error"
        """
        payload = {
            "values": {
                "responseText": response_text,
                "queryText": query_text,
                "routedTo": route.value,
            }
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Qualtrics logging failed: {e}")
            return STATUS_ERROR

        if not response.ok:
            logger.warning(f"Qualtrics responded with HTTP {response.status_code}")
        return f"Qualtrics status: {response.status_code}"


def create_sink(settings) -> AnalyticsSink:
    """QualtricsSink when all three credentials are set, else NullSink."""
    if not settings.analytics_enabled:
        logger.debug("Analytics disabled (credentials not configured)")
        return NullSink()
    return QualtricsSink(
        api_token=settings.qualtrics_api_token,
        survey_id=settings.qualtrics_survey_id,
        datacenter=settings.qualtrics_datacenter,
        timeout=settings.analytics.timeout,
    )
