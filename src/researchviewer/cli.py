"""CLI entrypoints for ResearchViewer."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from researchviewer.api.client import ResearchApiClient
from researchviewer.chat.format import format_chat_message
from researchviewer.config import Settings, load_settings
from researchviewer.export.pdf import DocumentExporter
from researchviewer.logging import configure_logging, get_logger
from researchviewer.notify import ConsoleNotifier
from researchviewer.render.renderer import DocumentRenderer
from researchviewer.viewer import DocumentViewer

app = typer.Typer(add_completion=False, help="Research document viewer: outline, render, export and chat")
logger = get_logger(__name__)


def _read_markup(path: Path) -> str:
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


@app.command()
def outline(file: Path = typer.Argument(..., help="Markdown document")) -> None:
    """Print the document's table of contents with anchor ids."""

    settings = load_settings()
    configure_logging(settings.log_level)

    document = DocumentRenderer().render(_read_markup(file))
    if not document.outline:
        typer.echo("No sections found")
        return
    for entry in document.outline:
        indent = "  " * (entry.level - 1)
        typer.echo(f"{indent}{entry.text}  #{entry.anchor_id}")


@app.command()
def render(
    file: Path = typer.Argument(..., help="Markdown document"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the HTML here instead of stdout"),
) -> None:
    """Render the document to HTML with anchored headings."""

    settings = load_settings()
    configure_logging(settings.log_level)

    document = DocumentRenderer().render(_read_markup(file))
    html = f'<div class="viewer-document">{document.html}</div>\n'
    if output is None:
        typer.echo(html)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(html, encoding="utf-8")
        typer.echo(str(output))
    if not document.ok:
        raise typer.Exit(code=1)


@app.command("export-pdf")
def export_pdf(
    file: Path = typer.Argument(..., help="Markdown document"),
    title: str = typer.Option("", "--title", "-t", help="Document title (defaults to the file name)"),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Output directory (overrides RESEARCHVIEWER_EXPORTS_DIR)",
    ),
) -> None:
    """Export the document as a paginated PDF."""

    settings = load_settings()
    if output_dir is not None:
        settings.exports_dir = output_dir
    configure_logging(settings.log_level)

    exporter = DocumentExporter(settings, notifier=ConsoleNotifier(toast_duration_s=settings.toast_duration_s))
    result = asyncio.run(exporter.export(_read_markup(file), title or file.stem))
    if not result.ok:
        raise typer.Exit(code=1)
    typer.echo(str(result.path))


@app.command()
def ask(
    file: Path = typer.Argument(..., help="Markdown document"),
    question: str = typer.Argument(..., help="Question about the document"),
    doc_id: str = typer.Option(..., "--doc-id", help="Backend id of the document"),
    title: str = typer.Option("", "--title", "-t", help="Document title"),
    save: bool = typer.Option(False, "--save", help="Also save the conversation as markdown"),
) -> None:
    """Ask one question about a document and print the conversation."""

    settings = load_settings()
    configure_logging(settings.log_level)

    logger.info("CLI ask requested", extra={"doc_id": doc_id})
    markup = _read_markup(file)
    transcript = asyncio.run(_ask(settings, markup, title or file.stem, doc_id, question, save))
    for role, content in transcript:
        label = "You" if role == "user" else "Assistant"
        typer.echo(f"{label}: {content}\n")


async def _ask(
    settings: Settings,
    markup: str,
    title: str,
    doc_id: str,
    question: str,
    save: bool,
) -> list[tuple[str, str]]:
    notifier = ConsoleNotifier(toast_duration_s=settings.toast_duration_s)
    async with ResearchApiClient(settings) as client:
        viewer = DocumentViewer(settings, submitter=client, opener=client, research=client, notifier=notifier)
        viewer.open_viewer(markup, title, doc_id)
        if await viewer.send_message(question):
            await viewer.chat.wait_idle()
        transcript = [(m.role, m.content) for m in viewer.context.transcript]
        if save:
            result = viewer.download_chat()
            if result.ok:
                typer.echo(str(result.path))
        await viewer.aclose()
    return transcript


@app.command("format-message")
def format_message(text: str = typer.Argument(..., help="Assistant message text")) -> None:
    """Print the chat HTML for an assistant message."""

    typer.echo(format_chat_message(text))


if __name__ == "__main__":
    app()
