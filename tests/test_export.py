"""Tests for the PDF export pipeline."""

from __future__ import annotations

import asyncio
from pathlib import Path

from bs4 import BeautifulSoup
from fakes import FakeNotifier, FakePaginator

from researchviewer.config import Settings
from researchviewer.export.paginator import PageOptions, ReportLabPaginator, box, collect_ids, px
from researchviewer.export.pdf import (
    PDF_FAILED_MESSAGE,
    PDF_UNAVAILABLE_MESSAGE,
    DocumentExporter,
    build_offscreen_container,
    sanitize_filename,
)
from researchviewer.render.renderer import DocumentRenderer
from researchviewer.export.styles import (
    BRAND_COLOR,
    STYLE_TABLE,
    TABLE_STRIPE_BG,
    apply_inline_styles,
    parse_css,
)

DOC = """# Report

Body with **key** point and `code`.

## Data

| A | B |
|---|---|
| 1 | 2 |
| 3 | 4 |
| 5 | 6 |

```
print("hi")
```
"""


def _settings(tmp_path: Path) -> Settings:
    return Settings(exports_dir=tmp_path, export_settle_s=0.0)


def test_sanitize_filename() -> None:
    """It should replace every non-alphanumeric character with an underscore."""

    assert sanitize_filename("NVDA: Q3/2024 report") == "NVDA__Q3_2024_report"
    assert sanitize_filename("") == ""


def test_style_table_covers_element_kinds() -> None:
    """It should style every element kind the export restyles."""

    assert set(STYLE_TABLE) == {"h1", "h2", "h3", "p", "strong", "ul", "ol", "li", "table", "th", "td", "code", "pre"}
    assert STYLE_TABLE["h1"]["color"] == BRAND_COLOR
    assert STYLE_TABLE["h1"]["font-size"] == "28px"
    assert STYLE_TABLE["h2"]["border-left"] == f"4px solid {BRAND_COLOR}"


def test_apply_inline_styles_replaces_and_stripes() -> None:
    """It should overwrite existing styles and stripe even table rows."""

    soup = BeautifulSoup(
        '<div><h1 style="color: red">T</h1><table><tr><th>h</th></tr><tr><td>1</td></tr>'
        "<tr><td>2</td></tr></table></div>",
        "lxml",
    )
    container = soup.div
    apply_inline_styles(container)

    h1 = parse_css(container.h1["style"])
    assert h1["color"] == BRAND_COLOR
    rows = container.find_all("tr")
    assert "style" not in rows[0].attrs
    assert parse_css(rows[1]["style"]) == {"background-color": TABLE_STRIPE_BG}
    assert "style" not in rows[2].attrs


def test_apply_inline_styles_is_idempotent() -> None:
    """It should give the same tree when applied twice."""

    soup = BeautifulSoup("<div><p>a <strong>b</strong></p><ul><li>x</li></ul></div>", "lxml")
    once = str(apply_inline_styles(soup.div))
    twice = str(apply_inline_styles(soup.div))
    assert once == twice


def test_offscreen_container_is_a_copy() -> None:
    """It should copy the content at the fixed page width without touching the source."""

    html = '<h1 id="a">A</h1><p>b</p>'
    soup, container = build_offscreen_container(html, page_width=800)

    assert "width: 800px" in container["style"]
    assert container.find("h1", id="a") is not None
    apply_inline_styles(container)
    assert html == '<h1 id="a">A</h1><p>b</p>'
    soup.decompose()


def test_export_styles_and_paginates(tmp_path: Path) -> None:
    """It should hand a restyled copy and the page options to the paginator."""

    paginator = FakePaginator()
    exporter = DocumentExporter(_settings(tmp_path), paginator=paginator, notifier=FakeNotifier())

    result = asyncio.run(exporter.export(DOC, "Q3 Report"))

    assert result.ok
    assert result.path == tmp_path / "Q3_Report.pdf"
    assert result.path.exists()

    options = paginator.options[0]
    assert options.filename == "Q3_Report.pdf"
    assert options.margin_in == (0.75, 0.75, 0.75, 0.75)
    assert (options.page_format, options.orientation) == ("letter", "portrait")
    assert (options.scale, options.image_type, options.image_quality) == (2, "jpeg", 0.98)
    assert options.pagebreak_modes == ("avoid-all", "css", "legacy")
    assert options.pagebreak_before == ".page-break"

    styled = BeautifulSoup(paginator.saved_html[0], "lxml")
    assert parse_css(styled.find("h1")["style"])["color"] == BRAND_COLOR
    assert parse_css(styled.find("strong")["style"])["color"] == BRAND_COLOR
    assert parse_css(styled.find_all("tr")[2]["style"]) == {"background-color": TABLE_STRIPE_BG}


def test_export_destroys_container(tmp_path: Path) -> None:
    """It should decompose the export copy after pagination, even when it fails."""

    paginator = FakePaginator(fail=True)
    notifier = FakeNotifier()
    exporter = DocumentExporter(_settings(tmp_path), paginator=paginator, notifier=notifier)

    result = asyncio.run(exporter.export(DOC, "Doc"))

    assert not result.ok
    assert notifier.alerts == [PDF_FAILED_MESSAGE]
    assert paginator.elements[0].decomposed


def test_export_without_paginator_library(tmp_path: Path) -> None:
    """It should show a blocking notice when the paginator is unavailable."""

    paginator = FakePaginator(available=False)
    notifier = FakeNotifier()
    exporter = DocumentExporter(_settings(tmp_path), paginator=paginator, notifier=notifier)

    result = asyncio.run(exporter.export(DOC, "Doc"))

    assert result.message == PDF_UNAVAILABLE_MESSAGE
    assert notifier.alerts == [PDF_UNAVAILABLE_MESSAGE]
    assert paginator.saved_html == []


def test_export_empty_content_is_noop(tmp_path: Path) -> None:
    """It should do nothing when there is no content."""

    paginator = FakePaginator()
    notifier = FakeNotifier()
    exporter = DocumentExporter(_settings(tmp_path), paginator=paginator, notifier=notifier)

    result = asyncio.run(exporter.export("", "Doc"))

    assert not result.ok
    assert paginator.saved_html == []
    assert notifier.alerts == []


def test_css_length_helpers() -> None:
    """It should read pixel lengths and expand box shorthands."""

    assert px("3px solid #336F51") == 3.0
    assert px(None, 7) == 7
    assert box("30px 0 20px 0") == (30.0, 0.0, 20.0, 0.0)
    assert box("16px 0") == (16.0, 0.0, 16.0, 0.0)
    assert box("12px") == (12.0, 12.0, 12.0, 12.0)


def test_reportlab_paginator_writes_pdf(tmp_path: Path) -> None:
    """It should lay out a styled document into a real PDF file."""

    exporter = DocumentExporter(_settings(tmp_path), paginator=ReportLabPaginator())
    result = asyncio.run(exporter.export(DOC + "\n- one\n- two\n", "Real"))

    assert result.ok
    assert result.path is not None
    assert result.path.read_bytes().startswith(b"%PDF")


def test_page_options_from_settings() -> None:
    """It should take margins, width, scale and quality from settings."""

    settings = Settings(export_margin_in=1.0, export_page_width=900, export_scale=3, export_image_quality=0.9)
    options = PageOptions.from_settings(settings, filename="x.pdf", title="X")

    assert options.margin_in == (1.0, 1.0, 1.0, 1.0)
    assert (options.page_width_px, options.scale, options.image_quality) == (900, 3, 0.9)
    assert options.keep_together == frozenset({"table", "pre"})


RICH_DOC = """# Overview

A claim that needs a source.[^1] See [the risks](#risks) and [a missing part](#nowhere).

- Outer point
    - Nested detail
    - Another detail
- Second point

Moat
:   A durable competitive advantage.

<div class="page-break"></div>

## Risks

1. Export controls
2. Supply concentration

[^1]: Annual report, page 12.
"""


def test_export_stops_when_document_does_not_render(tmp_path: Path) -> None:
    """It should notify the failure instead of paginating the render error."""

    def broken(markup: str) -> str:
        raise ValueError("grammar exploded")

    paginator = FakePaginator()
    notifier = FakeNotifier()
    exporter = DocumentExporter(
        _settings(tmp_path),
        renderer=DocumentRenderer(transform=broken),
        paginator=paginator,
        notifier=notifier,
    )

    result = asyncio.run(exporter.export(DOC, "T"))

    assert not result.ok
    assert result.message == PDF_FAILED_MESSAGE
    assert notifier.alerts == [PDF_FAILED_MESSAGE]
    assert paginator.saved_html == []
    assert not (tmp_path / "T.pdf").exists()


def test_collect_ids_includes_footnotes() -> None:
    """It should gather heading and footnote ids from the styled copy."""

    html = DocumentRenderer().render(RICH_DOC).html
    soup, container = build_offscreen_container(html, page_width=800)

    ids = collect_ids(container)

    assert {"overview", "risks", "fn:1", "fnref:1"} <= ids
    soup.decompose()


def test_reportlab_paginator_lays_out_rich_document(tmp_path: Path) -> None:
    """It should paginate footnotes, in-page links, nested and definition lists and page breaks."""

    notifier = FakeNotifier()
    exporter = DocumentExporter(_settings(tmp_path), paginator=ReportLabPaginator(), notifier=notifier)

    result = asyncio.run(exporter.export(RICH_DOC, "Rich"))

    assert notifier.alerts == []
    assert result.ok
    assert result.path is not None
    data = result.path.read_bytes()
    assert data.startswith(b"%PDF")
    assert b"/Link" in data
