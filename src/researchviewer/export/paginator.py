"""Page layout of a styled element tree.

:class:`ReportLabPaginator` walks the restyled export copy and lays it out with reportlab
platypus. Sizes written in CSS pixels are mapped so that the fixed export width fills the printable
width of the page, the same fit a screen-capture paginator would produce.
"""

from __future__ import annotations

import importlib.util
import re
from dataclasses import dataclass, field
from functools import lru_cache
from html import escape
from pathlib import Path
from typing import Any, Literal

from bs4 import Comment, NavigableString, Tag

from researchviewer.config import Settings
from researchviewer.errors import ExportError, ExportUnavailableError
from researchviewer.export.styles import parse_css
from researchviewer.logging import get_logger

logger = get_logger(__name__)

_PX_RE = re.compile(r"(-?\d+(?:\.\d+)?)px")
_BLOCK_TAGS = {"p", "ul", "ol", "pre", "table", "blockquote", "div", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "dl"}


@dataclass(frozen=True)
class PageOptions:
    """Page, margin, scale and pagination settings for one export."""

    filename: str
    title: str = ""
    margin_in: tuple[float, float, float, float] = (0.75, 0.75, 0.75, 0.75)
    page_format: Literal["letter", "a4"] = "letter"
    orientation: Literal["portrait", "landscape"] = "portrait"
    page_width_px: int = 800
    scale: int = 2
    image_type: str = "jpeg"
    image_quality: float = 0.98
    background_color: str = "#ffffff"
    compress: bool = True
    pagebreak_modes: tuple[str, ...] = ("avoid-all", "css", "legacy")
    pagebreak_before: str = ".page-break"
    keep_together: frozenset[str] = field(default_factory=lambda: frozenset({"table", "pre"}))

    @classmethod
    def from_settings(cls, settings: Settings, *, filename: str, title: str = "") -> "PageOptions":
        m = settings.export_margin_in
        return cls(
            filename=filename,
            title=title,
            margin_in=(m, m, m, m),
            page_width_px=settings.export_page_width,
            scale=settings.export_scale,
            image_quality=settings.export_image_quality,
        )


def px(value: str | None, default: float = 0.0) -> float:
    """Read the first pixel length out of a CSS value."""

    if not value:
        return default
    m = _PX_RE.search(value)
    return float(m.group(1)) if m else default


def box(value: str | None) -> tuple[float, float, float, float]:
    """Expand a CSS margin/padding shorthand into (top, right, bottom, left) pixels."""

    parts = [px(p) if p.endswith("px") else 0.0 for p in (value or "").split()]
    if not parts:
        return (0.0, 0.0, 0.0, 0.0)
    if len(parts) == 1:
        return (parts[0],) * 4  # type: ignore[return-value]
    if len(parts) == 2:
        return (parts[0], parts[1], parts[0], parts[1])
    if len(parts) == 3:
        return (parts[0], parts[1], parts[2], parts[1])
    return (parts[0], parts[1], parts[2], parts[3])


def collect_ids(element: Tag) -> set[str]:
    """Every element id in ``element``, itself included."""

    tags = [element, *element.find_all(id=True)]
    return {str(t["id"]) for t in tags if t.get("id")}


@lru_cache(maxsize=None)
def _anchor_class() -> type:
    from reportlab.platypus.flowables import Flowable

    class Anchor(Flowable):
        """Zero-size flowable that registers a named destination where it lands."""

        def __init__(self, name: str) -> None:
            super().__init__()
            self.name = name
            self.width = self.height = 0

        def wrap(self, available_width: float, available_height: float) -> tuple[float, float]:
            return (0, 0)

        def draw(self) -> None:
            self.canv.bookmarkHorizontal(self.name, 0, 0)

    return Anchor


class ReportLabPaginator:
    """Paginator backed by reportlab."""

    def ensure_available(self) -> None:
        if importlib.util.find_spec("reportlab") is None:
            raise ExportUnavailableError("PDF library not loaded")

    def save(self, element: Tag, options: PageOptions, path: Path) -> Path:
        self.ensure_available()
        from reportlab.lib import pagesizes
        from reportlab.lib.units import inch
        from reportlab.platypus import SimpleDocTemplate

        size = pagesizes.A4 if options.page_format == "a4" else pagesizes.letter
        size = pagesizes.landscape(size) if options.orientation == "landscape" else pagesizes.portrait(size)
        top, right, bottom, left = (m * inch for m in options.margin_in)
        frame_width = size[0] - left - right

        path.parent.mkdir(parents=True, exist_ok=True)
        doc = SimpleDocTemplate(
            str(path),
            pagesize=size,
            leftMargin=left,
            rightMargin=right,
            topMargin=top,
            bottomMargin=bottom,
            title=options.title or path.stem,
            pageCompression=1 if options.compress else 0,
        )
        layout = _Layout(options=options, frame_width=frame_width, anchors=collect_ids(element))
        story = layout.flowables(element, lead=layout.named(element))
        if not story:
            raise ExportError("Nothing to lay out")
        story.extend(layout.anchor_flowables(sorted(layout.anchors - layout.emitted)))
        doc.build(story)
        logger.info("PDF written", extra={"path": str(path), "flowables": len(story)})
        return path


class _Layout:
    """Converts one styled tree into platypus flowables."""

    def __init__(self, *, options: PageOptions, frame_width: float, anchors: set[str] | None = None) -> None:
        from reportlab.lib.enums import TA_JUSTIFY, TA_LEFT
        from reportlab.lib.styles import ParagraphStyle

        self._options = options
        self.anchors = set(anchors or ())
        self.emitted: set[str] = set()
        self._frame_width = frame_width
        self._scale = frame_width / float(options.page_width_px)
        self._ParagraphStyle = ParagraphStyle
        self._justify = TA_JUSTIFY
        self._left = TA_LEFT
        self.body = ParagraphStyle(
            "body",
            fontName="Helvetica",
            fontSize=14 * self._scale,
            leading=14 * 1.6 * self._scale,
            textColor=self._color("#1f2d3d"),
        )

    # -- helpers -------------------------------------------------------

    def _pt(self, pixels: float) -> float:
        return pixels * self._scale

    @staticmethod
    def _color(value: str | None) -> Any:
        from reportlab.lib import colors

        if not value or value in {"white", "#fff", "#ffffff"}:
            return colors.white if value else None
        try:
            return colors.HexColor(value) if value.startswith("#") else colors.toColor(value)
        except (ValueError, AttributeError):
            return None

    @staticmethod
    def _style_of(tag: Tag) -> dict[str, str]:
        return parse_css(tag.get("style") if isinstance(tag.get("style"), str) else None)

    def _is_page_break(self, tag: Tag) -> bool:
        wanted = self._options.pagebreak_before.lstrip(".")
        classes = tag.get("class") or []
        return wanted in classes or self._style_of(tag).get("page-break-before") == "always"

    def _keep(self, tag: Tag, flowable: Any) -> Any:
        from reportlab.platypus import KeepTogether

        css = self._style_of(tag)
        if tag.name in self._options.keep_together or css.get("page-break-inside") == "avoid":
            return KeepTogether([flowable])
        return flowable

    # -- destinations --------------------------------------------------

    @staticmethod
    def named(tag: Tag) -> list[str]:
        anchor = tag.get("id")
        return [str(anchor)] if anchor else []

    def mark(self, names: list[str]) -> str:
        """Paragraph markup registering ``names`` as link destinations."""

        self.emitted.update(names)
        return "".join(f'<a name="{escape(n)}"/>' for n in names)

    def anchor_flowables(self, names: list[str]) -> list[Any]:
        self.emitted.update(names)
        anchor = _anchor_class()
        return [anchor(n) for n in names]

    def link(self, href: str, inner: str) -> str:
        if href.startswith("#"):
            if href[1:] not in self.anchors:
                return inner
        return f'<a href="{escape(href)}" color="blue">{inner}</a>'

    def inline(self, node: Tag) -> str:
        """Reportlab paragraph markup for the inline content of ``node``."""

        parts: list[str] = []
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                parts.append(escape(str(child), quote=False))
                continue
            if not isinstance(child, Tag):
                continue
            inner = self.inline(child)
            name = child.name
            css = self._style_of(child)
            if name in {"strong", "b"}:
                color = css.get("color")
                inner = f"<b>{inner}</b>"
                if color:
                    inner = f'<font color="{color}">{inner}</font>'
            elif name in {"em", "i"}:
                inner = f"<i>{inner}</i>"
            elif name == "code":
                size = self._pt(px(css.get("font-size"), 13))
                inner = f'<font face="Courier" size="{size:.1f}">{inner}</font>'
            elif name in {"del", "s", "strike"}:
                inner = f"<strike>{inner}</strike>"
            elif name == "sup":
                inner = f"<super>{inner}</super>"
            elif name == "sub":
                inner = f"<sub>{inner}</sub>"
            elif name == "a" and child.get("href"):
                inner = self.link(str(child["href"]), inner)
            elif name == "br":
                inner = "<br/>"
            parts.append(self.mark(self.named(child)) + inner)
        return "".join(parts).strip()

    # -- blocks --------------------------------------------------------

    def flowables(self, node: Tag, lead: list[str] | None = None) -> list[Any]:
        """Block flowables for the children of ``node``.

        ``lead`` names destinations that belong in front of the first block. Ids of block
        elements go into the first paragraph they produce, or into zero-size anchors placed
        before blocks that hold no paragraph text of their own.
        """

        from reportlab.platypus import PageBreak, Paragraph
        from reportlab.platypus.flowables import HRFlowable

        out: list[Any] = []
        pending = list(lead or [])
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                text = str(child).strip()
                if text:
                    out.append(Paragraph(self.mark(pending) + escape(text, quote=False), self.body))
                    pending = []
                continue
            if not isinstance(child, Tag):
                continue
            if self._is_page_break(child):
                out.append(PageBreak())
                if not child.get_text(strip=True):
                    pending += self.named(child)
                    continue
            name = child.name
            pending += self.named(child)
            if name in {"h1", "h2", "h3", "h4", "h5", "h6"}:
                out.extend(self.heading(child, lead=pending))
            elif name == "p":
                out.append(self.paragraph(child, lead=pending))
            elif name in {"div", "section", "article", "blockquote", "body", "html"}:
                out.extend(self.flowables(child, lead=pending))
            elif name == "dl":
                out.extend(self.definitions(child, lead=pending))
            elif name in {"ul", "ol", "table", "pre", "hr"}:
                out.extend(self.anchor_flowables(pending))
                if name in {"ul", "ol"}:
                    out.append(self.listing(child))
                elif name == "table":
                    out.append(self._keep(child, self.table(child)))
                elif name == "pre":
                    out.append(self._keep(child, self.preformatted(child)))
                else:
                    out.append(HRFlowable(width="100%", thickness=self._pt(1), color=self._color("#e0e5ea")))
            else:
                markup = self.inline(child)
                if not markup:
                    continue
                out.append(Paragraph(self.mark(pending) + markup, self.body))
            pending = []
        out.extend(self.anchor_flowables(pending))
        return out

    def definitions(self, tag: Tag, lead: list[str] | None = None) -> list[Any]:
        from reportlab.platypus import Paragraph

        term = self._ParagraphStyle("dt", parent=self.body, fontName="Helvetica-Bold")
        detail = self._ParagraphStyle("dd", parent=self.body, leftIndent=self._pt(24))
        out: list[Any] = []
        pending = list(lead or [])
        for child in tag.find_all(["dt", "dd"], recursive=False):
            markup = self.mark(pending + self.named(child)) + self.inline(child)
            pending = []
            out.append(Paragraph(markup, term if child.name == "dt" else detail))
        out.extend(self.anchor_flowables(pending))
        return out

    def heading(self, tag: Tag, lead: list[str] | None = None) -> list[Any]:
        from reportlab.platypus import Paragraph, Table, TableStyle
        from reportlab.platypus.flowables import HRFlowable

        css = self._style_of(tag)
        size = self._pt(px(css.get("font-size"), 18))
        top, _, bottom, _ = box(css.get("margin"))
        bold = css.get("font-weight", "700") in {"600", "700", "bold"}
        style = self._ParagraphStyle(
            f"heading-{tag.name}",
            parent=self.body,
            fontName="Helvetica-Bold" if bold else "Helvetica",
            fontSize=size,
            leading=size * 1.25,
            textColor=self._color(css.get("color")) or self.body.textColor,
            spaceBefore=self._pt(top),
            spaceAfter=self._pt(bottom) if "border-bottom" not in css else self._pt(px(css.get("padding-bottom"))),
            keepWithNext=css.get("page-break-after") == "avoid",
        )
        para = Paragraph(self.mark(list(lead or [])) + self.inline(tag), style)

        if "border-left" in css:
            width = self._pt(px(css["border-left"], 4))
            color = self._color(css["border-left"].split()[-1])
            cell = Table([[para]], colWidths=[self._frame_width])
            cell.setStyle(
                TableStyle(
                    [
                        ("LINEBEFORE", (0, 0), (-1, -1), width, color),
                        ("LEFTPADDING", (0, 0), (-1, -1), self._pt(px(css.get("padding-left"), 12))),
                        ("TOPPADDING", (0, 0), (-1, -1), 0),
                        ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
                    ]
                )
            )
            cell.spaceBefore = self._pt(top)
            cell.spaceAfter = self._pt(bottom)
            cell.keepWithNext = style.keepWithNext
            style.spaceBefore = style.spaceAfter = 0
            return [cell]

        if "border-bottom" in css:
            rule = HRFlowable(
                width="100%",
                thickness=self._pt(px(css["border-bottom"], 3)),
                color=self._color(css["border-bottom"].split()[-1]),
                spaceBefore=0,
                spaceAfter=self._pt(bottom),
            )
            rule.keepWithNext = style.keepWithNext
            return [para, rule]
        return [para]

    def paragraph(self, tag: Tag, lead: list[str] | None = None) -> Any:
        from reportlab.platypus import Paragraph

        css = self._style_of(tag)
        top, _, bottom, _ = box(css.get("margin"))
        style = self._ParagraphStyle(
            "p",
            parent=self.body,
            alignment=self._justify if css.get("text-align") == "justify" else self._left,
            spaceBefore=self._pt(top),
            spaceAfter=self._pt(bottom),
        )
        return Paragraph(self.mark(list(lead or [])) + self.inline(tag), style)

    def listing(self, tag: Tag) -> Any:
        from reportlab.platypus import ListFlowable, ListItem, Paragraph

        css = self._style_of(tag)
        top, _, bottom, _ = box(css.get("margin"))
        items = []
        for li in tag.find_all("li", recursive=False):
            has_blocks = any(isinstance(c, Tag) and c.name in _BLOCK_TAGS for c in li.children)
            if has_blocks:
                content = self.flowables(li, lead=self.named(li))
            else:
                content = [Paragraph(self.mark(self.named(li)) + self.inline(li), self.body)]
            items.append(ListItem(content, spaceAfter=self._pt(px(self._style_of(li).get("margin-bottom"), 8))))
        flow = ListFlowable(
            items,
            bulletType="1" if tag.name == "ol" else "bullet",
            leftIndent=self._pt(px(css.get("padding-left"), 24)),
            bulletFontSize=self.body.fontSize,
        )
        flow.spaceBefore = self._pt(top)
        flow.spaceAfter = self._pt(bottom)
        return flow

    def table(self, tag: Tag) -> Any:
        from reportlab.platypus import Paragraph, Table, TableStyle

        rows = tag.find_all("tr")
        data: list[list[Any]] = []
        commands: list[tuple[Any, ...]] = []
        header_rows = 0
        for r, row in enumerate(rows):
            cells = row.find_all(["th", "td"], recursive=False)
            if cells and all(c.name == "th" for c in cells) and r == header_rows:
                header_rows += 1
            line = []
            for cell in cells:
                css = self._style_of(cell)
                bold = css.get("font-weight") in {"600", "700", "bold"}
                style = self._ParagraphStyle(
                    f"cell-{cell.name}",
                    parent=self.body,
                    fontName="Helvetica-Bold" if bold else "Helvetica",
                )
                line.append(Paragraph(self.inline(cell), style))
                bg = self._color(css.get("background-color"))
                if bg is not None:
                    commands.append(("BACKGROUND", (len(line) - 1, r), (len(line) - 1, r), bg))
            row_bg = self._color(self._style_of(row).get("background-color"))
            if row_bg is not None:
                commands.append(("BACKGROUND", (0, r), (-1, r), row_bg))
            data.append(line)

        ncols = max((len(line) for line in data), default=0)
        if not ncols:
            return Paragraph("", self.body)
        for line in data:
            line.extend(Paragraph("", self.body) for _ in range(ncols - len(line)))

        cell_css = self._style_of(tag.find(["td", "th"]) or tag)
        border = cell_css.get("border", "1px solid #e0e5ea")
        pad_top, pad_right, pad_bottom, pad_left = box(cell_css.get("padding", "10px 8px"))
        commands.extend(
            [
                ("GRID", (0, 0), (-1, -1), self._pt(px(border, 1)), self._color(border.split()[-1])),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TOPPADDING", (0, 0), (-1, -1), self._pt(pad_top)),
                ("RIGHTPADDING", (0, 0), (-1, -1), self._pt(pad_right)),
                ("BOTTOMPADDING", (0, 0), (-1, -1), self._pt(pad_bottom)),
                ("LEFTPADDING", (0, 0), (-1, -1), self._pt(pad_left)),
            ]
        )
        table = Table(
            data,
            colWidths=[self._frame_width / ncols] * ncols,
            repeatRows=header_rows,
        )
        table.setStyle(TableStyle(commands))
        top, _, bottom, _ = box(self._style_of(tag).get("margin"))
        table.spaceBefore = self._pt(top)
        table.spaceAfter = self._pt(bottom)
        return table

    def preformatted(self, tag: Tag) -> Any:
        from reportlab.platypus import Preformatted

        css = self._style_of(tag)
        pad = px(css.get("padding"), 16)
        top, _, bottom, _ = box(css.get("margin"))
        code_css = self._style_of(tag.find("code") or tag)
        size = self._pt(px(code_css.get("font-size"), 13))
        style = self._ParagraphStyle(
            "pre",
            parent=self.body,
            fontName="Courier",
            fontSize=size,
            leading=size * 1.4,
            backColor=self._color(css.get("background")),
            borderPadding=self._pt(pad),
            spaceBefore=self._pt(top) + self._pt(pad),
            spaceAfter=self._pt(bottom) + self._pt(pad),
        )
        return Preformatted(tag.get_text().rstrip("\n"), style)
