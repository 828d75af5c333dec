"""
Slide model and the reveal.js HTML deck renderer
"""
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import folium
import plotly.graph_objects as go
from jinja2 import Environment, FileSystemLoader

from config import DECK_TITLE, REVEAL_CDN, REVEAL_THEME, SLIDES_DIR, TEMPLATE_DIR

DECK_TEMPLATE = "deck.html.j2"
_TITLE_PATTERN = re.compile(r"^#\s+(.+?)\s*$")
_NOTES_PATTERN = re.compile(r"^Note:\s*(.*)$")


@dataclass(frozen=True)
class Slide:
    """One slide: markdown text plus the key of the visual it embeds, if any."""

    title: str
    body: str = ""
    notes: str = ""
    visual: Optional[str] = None

    def to_markdown(self) -> str:
        """Markdown for reveal's markdown plugin, notes after a ``Note:`` line."""
        text = f"# {self.title}"
        if self.body:
            text += f"\n\n{self.body}"
        if self.notes:
            text += f"\n\nNote:\n{self.notes}"
        return text


def parse_slide_markdown(text: str, visual: Optional[str] = None) -> Slide:
    """
    Split slide markdown into title, body and speaker notes.

    The first ``# `` heading is the title; everything after a line starting
    with ``Note:`` is speaker notes.
    """
    title: Optional[str] = None
    body_lines: List[str] = []
    note_lines: List[str] = []
    in_notes = False

    for line in text.splitlines():
        if in_notes:
            note_lines.append(line)
            continue
        notes_match = _NOTES_PATTERN.match(line)
        if notes_match:
            in_notes = True
            if notes_match.group(1):
                note_lines.append(notes_match.group(1))
            continue
        title_match = _TITLE_PATTERN.match(line)
        if title is None and title_match:
            title = title_match.group(1)
            continue
        body_lines.append(line)

    if title is None:
        raise ValueError("Slide markdown has no '# ' title heading")

    return Slide(
        title=title,
        body="\n".join(body_lines).strip(),
        notes="\n".join(note_lines).strip(),
        visual=visual,
    )


def load_slides(
    order: Iterable[Tuple[str, Optional[str]]],
    slides_dir: Optional[Path] = None,
) -> List[Slide]:
    """Read ``<name>.md`` for every ``(name, visual)`` pair in deck order."""
    directory = Path(slides_dir or SLIDES_DIR)
    slides: List[Slide] = []
    for name, visual in order:
        path = directory / f"{name}.md"
        if not path.exists():
            raise FileNotFoundError(f"Slide text not found: {path}")
        slides.append(parse_slide_markdown(path.read_text(encoding="utf-8"), visual=visual))
    return slides


def render_visual_document(visual: Any) -> str:
    """Standalone HTML document for a folium map or plotly figure."""
    if isinstance(visual, folium.Map):
        return visual.get_root().render()
    if isinstance(visual, go.Figure):
        return visual.to_html(full_html=True, include_plotlyjs="cdn")
    raise TypeError(f"Cannot render visual of type {type(visual).__name__}")


def _template_environment(template_dir: Optional[Path] = None) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_deck(
    slides: Sequence[Slide],
    visuals: Dict[str, Any],
    *,
    title: str = DECK_TITLE,
    output_path: Optional[Path] = None,
    template_dir: Optional[Path] = None,
) -> str:
    """
    Render the slides into one reveal.js HTML document.

    Args:
        slides: Slides in presentation order.
        visuals: Built visuals keyed by the names slides refer to.
        output_path: When given, the document is also written there.

    Returns:
        str: the HTML document.
    """
    sections = []
    for slide in slides:
        if slide.visual is None:
            sections.append({"kind": "text", "markdown": slide.to_markdown()})
            continue
        if slide.visual not in visuals:
            raise KeyError(f"Slide {slide.title!r} refers to visual {slide.visual!r}, which was not built")
        sections.append(
            {
                "kind": "visual",
                "title": slide.title,
                "body": slide.body,
                "notes": slide.notes,
                "document": render_visual_document(visuals[slide.visual]),
            }
        )

    template = _template_environment(template_dir).get_template(DECK_TEMPLATE)
    document = template.render(
        title=title,
        sections=sections,
        reveal_cdn=REVEAL_CDN.rstrip("/"),
        reveal_theme=REVEAL_THEME,
    )

    if output_path is not None:
        destination = Path(output_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(document, encoding="utf-8")
    return document
