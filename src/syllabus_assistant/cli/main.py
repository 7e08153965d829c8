"""
CLI Main - Typer command-line interface.
========================================

Commands:
- ask: Answer a question with the full pipeline
- route: Show how a question is classified (offline)
- sections: List the syllabus sections
- extract: Run the deterministic due-block lookup
- serve: Start the HTTP service
- eval: Run the routing evaluation harness
- info: Show configuration and document status
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from syllabus_assistant.shared.logging import get_logger

logger = get_logger(__name__)

app = typer.Typer(
    name="syllabus-assistant",
    help="""📘 Syllabus Assistant - Course Q&A for the EBO and Essay

Answers student questions about one course by routing each question to
exactly one path:

  • redirect       how-to / format / citation questions → EBO & Essay Assistant
  • deterministic  due dates, late penalties, extensions → verbatim syllabus text
  • generative     everything else → LLM constrained to the syllabus

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

QUICK START:

  syllabus-assistant route "When is the essay due?"   # How would it be routed?
  syllabus-assistant extract -e essay                 # Deterministic lookup only
  syllabus-assistant ask "When is the essay due?"     # Full answer
  syllabus-assistant serve                            # HTTP service on :8000

EVALUATION:

  syllabus-assistant eval -o results.json

Use 'syllabus-assistant <command> --help' for detailed command options.
""",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def _parse_entity(value: Optional[str]):
    from syllabus_assistant.shared.schemas import Entity

    if value is None:
        return None
    try:
        return Entity(value.strip().lower())
    except ValueError:
        console.print(f"[red]Unknown entity '{value}' (use 'ebo' or 'essay')[/red]")
        raise typer.Exit(2)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging.",
    ),
):
    """Configure logging from settings before any command runs."""
    from syllabus_assistant.shared.config import get_settings
    from syllabus_assistant.shared.logging import setup_logging_from_settings

    setup_logging_from_settings(get_settings(), level="DEBUG" if verbose else None)


# ─────────────────────────────────────────────────────────────────────────────
# Ask Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def ask(
    question: str = typer.Argument(
        ...,
        help="Question about the course (wrap in quotes).",
    ),
    show_trailer: bool = typer.Option(
        False,
        "--trailer/--no-trailer",
        help="Print the analytics status comment as the HTTP service would.",
    ),
):
    """
    💬 Answer a question with the full pipeline.

    Redirect and deterministic answers work offline; the generative path
    needs OPENAI_API_KEY.

    Examples:
        syllabus-assistant ask "When is the essay due?"
        syllabus-assistant ask "What is the EBO about?"
    """
    from syllabus_assistant.rag.pipeline import Assistant
    from syllabus_assistant.shared.config import get_settings
    from syllabus_assistant.shared.errors import AssistantError

    assistant = Assistant.from_settings(get_settings())

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Answering...", total=None)
        try:
            answer = assistant.answer(question)
        except AssistantError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)

    console.print(Panel(
        answer.render(status_trailer=show_trailer),
        title="💬 Answer",
        border_style="green",
    ))
    entity = answer.decision.entity.value if answer.decision.entity else "none"
    console.print(f"[dim]Route: {answer.route.value} | Entity: {entity} | {answer.analytics_status}[/dim]")


# ─────────────────────────────────────────────────────────────────────────────
# Route Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def route(
    question: str = typer.Argument(..., help="Question to classify."),
):
    """
    🧭 Show how a question is classified.

    Prints every predicate of the intent table, the detected entity and
    the chosen route. No document read, no network.

    Examples:
        syllabus-assistant route "How do I format my EBO citations in MLA?"
    """
    from syllabus_assistant.rag.intents import IntentClassifier
    from syllabus_assistant.shared.config import get_settings

    classifier = IntentClassifier.from_settings(get_settings())
    decision = classifier.route(question)

    table = Table(title="Intent Predicates")
    table.add_column("Predicate", style="cyan")
    table.add_column("Match", justify="center")

    for name, matched in classifier.explain(question).items():
        table.add_row(name, "[green]✓[/green]" if matched else "[dim]✗[/dim]")

    console.print(table)
    console.print(Panel(
        f"Intent: [bold]{decision.intent.value}[/bold]\n"
        f"Route: [bold]{decision.route.value}[/bold]\n"
        f"Entity: {decision.entity.value if decision.entity else 'none'}\n"
        f"Scope: {decision.scope_hint}",
        title="🧭 Routing Decision",
    ))


# ─────────────────────────────────────────────────────────────────────────────
# Sections Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def sections(
    entity: Optional[str] = typer.Option(
        None,
        "--entity", "-e",
        help="Only show sections selected for an entity: ebo or essay.",
    ),
):
    """
    📑 List the syllabus sections.

    With --entity, shows the selector's prioritized pool instead.
    """
    from syllabus_assistant.rag.pipeline import Assistant
    from syllabus_assistant.shared.config import get_settings

    topic = _parse_entity(entity)
    assistant = Assistant.from_settings(get_settings())
    document = assistant.store.load()

    if document.is_empty:
        console.print(f"[yellow]Source document is missing or empty: {assistant.store.path}[/yellow]")
        raise typer.Exit(1)

    pool = list(document.sections)
    if topic is not None:
        pool = assistant.selector.select(pool, topic)

    table = Table(title=f"Sections ({len(pool)}/{len(document.sections)})")
    table.add_column("#", justify="right")
    table.add_column("Heading", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("Due heading", justify="center")
    table.add_column("Links", justify="right")

    for i, section in enumerate(pool, 1):
        table.add_row(
            str(i),
            section.heading,
            str(section.level),
            "✓" if assistant.selector.has_due_heading(section) else "",
            str(len(section.reference_links)),
        )

    console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Extract Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def extract(
    entity: str = typer.Option(
        ...,
        "--entity", "-e",
        help="Entity to look up: ebo or essay.",
    ),
):
    """
    🔎 Run the deterministic due-block lookup for an entity.

    Examples:
        syllabus-assistant extract -e essay
    """
    from syllabus_assistant.rag.pipeline import Assistant
    from syllabus_assistant.shared.config import get_settings

    topic = _parse_entity(entity)
    assistant = Assistant.from_settings(get_settings())
    block = assistant.extract(topic)

    if block is None:
        console.print(f"[yellow]No due block found for {topic.value}; the model would answer.[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(block.text, title=f"🔎 {block.heading}", border_style="green"))
    for url in block.reference_links:
        console.print(f"  • {url}")


# ─────────────────────────────────────────────────────────────────────────────
# Serve Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from config)."),
):
    """
    🚀 Start the HTTP service.

    POST / with {"query": "..."} returns a plain-text answer.
    """
    import uvicorn

    from syllabus_assistant.shared.config import get_settings

    settings = get_settings()
    host = host or settings.server.host
    port = port or settings.server.port

    console.print(f"[bold]🚀 Serving on http://{host}:{port}[/bold]")
    uvicorn.run("syllabus_assistant.app.http_api:app", host=host, port=port)


# ─────────────────────────────────────────────────────────────────────────────
# Eval Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def eval(
    questions_file: Optional[Path] = typer.Option(
        None,
        "--questions", "-q",
        help="YAML/JSON question bank. Default: config/questions.yaml, else built-in samples.",
    ),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Save detailed results to JSON file.",
    ),
    classify_only: bool = typer.Option(
        False,
        "--classify-only", "-c",
        help="Skip the extractor; compare classifier routes only.",
    ),
):
    """
    📊 Run the routing evaluation harness.

    Reports accuracy, per-route precision/recall and the deterministic
    block hit rate. Never calls the completion service.
    """
    from syllabus_assistant.evaluation import QuestionBank, RoutingEvaluator
    from syllabus_assistant.evaluation.questions import create_sample_questions
    from syllabus_assistant.rag.pipeline import Assistant
    from syllabus_assistant.shared.config import CONFIG_DIR, get_settings

    questions_file = questions_file or CONFIG_DIR / "questions.yaml"
    if questions_file.exists():
        questions = QuestionBank.from_file(questions_file)
        console.print(f"[green]✓ Loaded {len(questions)} questions from {questions_file}[/green]")
    else:
        console.print("[yellow]Using sample questions...[/yellow]")
        questions = create_sample_questions()

    evaluator = RoutingEvaluator(
        assistant=Assistant.from_settings(get_settings()),
        run_extraction=not classify_only,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Evaluating...", total=len(questions))

        def callback(current, total, qid):
            progress.update(task, completed=current, description=f"Evaluating {qid}...")

        result = evaluator.evaluate(questions, progress_callback=callback)

    console.print("\n" + result.summary())

    if output_file:
        result.save(output_file)
        console.print(f"\n[green]✓ Results saved to {output_file}[/green]")

    if result.failures:
        raise typer.Exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Info Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def info():
    """
    ℹ️ Show configuration and document status.

    Credentials are reported as set/unset, never printed.
    """
    from syllabus_assistant import __version__
    from syllabus_assistant.ingestion.loader import DocumentStore
    from syllabus_assistant.ingestion.sectionizer import Sectionizer
    from syllabus_assistant.shared.config import get_settings

    settings = get_settings()

    console.print(Panel(
        f"[bold]Syllabus Assistant[/bold]\n"
        f"Version: {__version__}\n"
        f"Config: config/settings.yaml",
        title="ℹ️ Info",
    ))

    table = Table(title="Configuration")
    table.add_column("Option", style="cyan")
    table.add_column("Value")

    table.add_row("Model", settings.openai_model)
    table.add_row("OpenAI key", "set" if settings.has_completion_credentials else "[red]unset[/red]")
    table.add_row("Analytics", "enabled" if settings.analytics_enabled else "disabled")
    table.add_row("Course page", settings.course_page)
    table.add_row("Assistant URL", settings.assistant_url)
    table.add_row("Deterministic intent", settings.classification.deterministic_intent)
    table.add_row("Context scope", settings.generation.context_scope)
    console.print(table)

    path = settings.resolve_content_path()
    document = DocumentStore(path, sectionizer=Sectionizer.from_settings(settings)).load()
    exists = "✓" if path.exists() else "✗"
    console.print(f"\n[bold]Source document:[/bold] {path} [{exists}]")
    if not document.is_empty:
        console.print(f"  version: {document.version}, sections: {len(document.sections)}")


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def cli():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    cli()
