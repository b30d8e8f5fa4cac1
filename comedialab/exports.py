from datetime import datetime
from io import BytesIO
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import docx
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from comedialab.models import JokeBit

LIBRARY_TITLE = "ComediaLab — My Jokes"


def format_date(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%d/%m/%Y %H:%M")


def _joke_lines(joke: JokeBit) -> List[str]:
    lines = [f"Premise: {joke.parts.premise}"]
    if joke.parts.setup:
        lines.append(f"Setup: {joke.parts.setup}")
    if joke.parts.punchline:
        lines.append(f"Punchline: {joke.parts.punchline}")
    meta = f"Technique: {joke.technique.value}"
    if joke.tags:
        meta += f" • Tags: {', '.join(joke.tags)}"
    lines.append(meta)
    return lines


def export_to_txt(jokes: Iterable[JokeBit]) -> bytes:
    blocks = []
    for joke in jokes:
        blocks.append("\n".join([joke.title, "-" * len(joke.title)] + _joke_lines(joke)))
    return "\n\n".join(blocks).encode("utf-8")


def export_to_md(jokes: Iterable[JokeBit]) -> bytes:
    parts = [f"# {LIBRARY_TITLE}"]
    for joke in jokes:
        body = "\n".join(f"- {line}" for line in _joke_lines(joke))
        parts.append(f"## {joke.title}\n\n_{format_date(joke.created_at)}_\n\n{body}")
    return "\n\n".join(parts).encode("utf-8")


def export_to_docx(jokes: Iterable[JokeBit]) -> bytes:
    """Export the jokes to DOCX using python-docx."""
    doc = docx.Document()
    doc.add_heading(LIBRARY_TITLE, level=0)
    for joke in jokes:
        doc.add_heading(joke.title, level=1)
        for line in _joke_lines(joke):
            doc.add_paragraph(line)

    buffer = BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer.read()


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def export_to_pdf(jokes: Iterable[JokeBit]) -> bytes:
    """Export the jokes to PDF using reportlab."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
    )

    styles = getSampleStyleSheet()
    story = [Paragraph(_escape(LIBRARY_TITLE), styles["Title"]), Spacer(1, 0.2 * inch)]
    for joke in jokes:
        story.append(Paragraph(_escape(joke.title), styles["Heading2"]))
        for line in _joke_lines(joke):
            story.append(Paragraph(_escape(line), styles["BodyText"]))
        story.append(Spacer(1, 0.15 * inch))

    doc.build(story)
    buffer.seek(0)
    return buffer.read()


# format -> (button label, mime type, exporter)
EXPORT_FORMATS: Dict[str, Tuple[str, str, Callable[[Iterable[JokeBit]], bytes]]] = {
    "txt": ("TXT", "text/plain", export_to_txt),
    "md": ("MD", "text/markdown", export_to_md),
    "docx": ("DOCX", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", export_to_docx),
    "pdf": ("PDF", "application/pdf", export_to_pdf),
}


def export_signature(jokes: Sequence[JokeBit]) -> Tuple[str, ...]:
    """Identifies the jokes an export was built from."""
    return tuple(j.id for j in jokes)


def build_exports(jokes: Sequence[JokeBit]) -> Dict[str, bytes]:
    return {fmt: exporter(jokes) for fmt, (_, _, exporter) in EXPORT_FORMATS.items()}
