"""
HTTP API - Single-endpoint boundary for the syllabus assistant.
===============================================================

Endpoint responsibilities:
- `OPTIONS /`: CORS preflight, 204 with permissive headers.
- `POST /`: JSON body `{"query": "..."}` → plain-text answer.
- any other method on `/`: 405 "Method Not Allowed".
- `GET /health`: document status as JSON.

Request validation:
- Body that is not JSON → 400 "Invalid JSON".
- Missing, blank or non-string `query` → 400 "Missing query"; nothing
  downstream (document, model, analytics) is touched.
- Generative path without an OpenAI key → 500 "Missing OpenAI API key".

The pipeline is synchronous (file reads, blocking HTTP clients), so it
runs in the threadpool.

Run with:
    uvicorn syllabus_assistant.app.http_api:app
"""

import json
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from syllabus_assistant import __version__
from syllabus_assistant.rag.pipeline import Assistant
from syllabus_assistant.shared.config import Settings, get_settings
from syllabus_assistant.shared.errors import AssistantError, RequestValidationError
from syllabus_assistant.shared.logging import get_logger

logger = get_logger(__name__)


CORS_ORIGIN_HEADER = {"Access-Control-Allow-Origin": "*"}

CORS_PREFLIGHT_HEADERS = {
    **CORS_ORIGIN_HEADER,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def parse_query(raw_body: bytes) -> str:
    """
    Pull the query string out of a request body.

    Raises:
        RequestValidationError: "Invalid JSON" or "Missing query"
    """
    try:
        payload: Any = json.loads(raw_body or b"")
    except (ValueError, UnicodeDecodeError):
        raise RequestValidationError("Invalid JSON")

    query = payload.get("query") if isinstance(payload, dict) else None
    if not isinstance(query, str) or not query.strip():
        raise RequestValidationError("Missing query")
    return query.strip()


def create_app(
    settings: Optional[Settings] = None,
    assistant: Optional[Assistant] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (default: global settings)
        assistant: Pre-built pipeline (default: built from settings)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    assistant = assistant or Assistant.from_settings(settings)
    status_trailer = settings.analytics.status_trailer

    app = FastAPI(title="Syllabus Assistant", version=__version__)
    app.state.settings = settings
    app.state.assistant = assistant

    @app.exception_handler(AssistantError)
    async def assistant_error_handler(request: Request, exc: AssistantError) -> Response:
        status_code = getattr(exc, "status_code", 500)
        message = getattr(exc, "message", str(exc))
        if isinstance(exc, RequestValidationError):
            logger.debug(f"Rejected request: {message}")
        else:
            logger.error(f"Request failed: {message}")
        return PlainTextResponse(message, status_code=status_code, headers=CORS_ORIGIN_HEADER)

    @app.options("/")
    async def preflight() -> Response:
        return Response(status_code=204, headers=CORS_PREFLIGHT_HEADERS)

    @app.post("/")
    async def ask(request: Request) -> Response:
        query = parse_query(await request.body())
        answer = await run_in_threadpool(assistant.answer, query)
        return PlainTextResponse(
            answer.render(status_trailer=status_trailer),
            headers=CORS_ORIGIN_HEADER,
        )

    @app.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"])
    async def method_not_allowed() -> Response:
        return PlainTextResponse("Method Not Allowed", status_code=405)

    @app.get("/health")
    async def health() -> JSONResponse:
        document = await run_in_threadpool(assistant.store.load)
        return JSONResponse(
            {
                "status": "ok",
                "document_version": document.version,
                "sections": len(document.sections),
            }
        )

    return app


app = create_app()
