"""Deterministic print style table.

Styles are written inline on every element of the export copy so the paginator sees the same
result no matter what stylesheet the live view used.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from bs4 import Tag

BRAND_COLOR = "#336F51"
TEXT_COLOR = "#1f2d3d"
TABLE_BORDER = "#e0e5ea"
TABLE_HEADER_BG = "#f8f9fb"
TABLE_STRIPE_BG = "#fafbfc"
CODE_BG = "#f5f5f5"

FONT_STACK = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif"
MONO_STACK = "'Courier New', Courier, monospace"

Style = Mapping[str, str]


def _style(**props: str) -> Style:
    return MappingProxyType({k.replace("_", "-"): v for k, v in props.items()})


CONTAINER_STYLE = _style(
    font_family=FONT_STACK,
    line_height="1.6",
    color=TEXT_COLOR,
    background="white",
)

# Keyed by element kind; applied in this order.
STYLE_TABLE: Mapping[str, Style] = MappingProxyType(
    {
        "h1": _style(
            display="block",
            font_size="28px",
            color=BRAND_COLOR,
            border_bottom=f"3px solid {BRAND_COLOR}",
            padding_bottom="12px",
            margin="30px 0 20px 0",
            font_weight="700",
            page_break_after="avoid",
        ),
        "h2": _style(
            display="block",
            font_size="22px",
            color=TEXT_COLOR,
            margin="25px 0 15px 0",
            font_weight="600",
            border_left=f"4px solid {BRAND_COLOR}",
            padding_left="12px",
            page_break_after="avoid",
        ),
        "h3": _style(
            display="block",
            font_size="18px",
            color=TEXT_COLOR,
            margin="20px 0 12px 0",
            font_weight="600",
            page_break_after="avoid",
        ),
        "p": _style(display="block", margin="0 0 16px 0", text_align="justify", line_height="1.6"),
        "strong": _style(display="inline", color=BRAND_COLOR, font_weight="600"),
        "ul": _style(display="block", margin="16px 0", padding_left="24px"),
        "ol": _style(display="block", margin="16px 0", padding_left="24px"),
        "li": _style(display="list-item", margin_bottom="8px", line_height="1.6"),
        "table": _style(
            display="table",
            width="100%",
            border_collapse="collapse",
            margin="20px 0",
            font_size="14px",
            page_break_inside="avoid",
        ),
        "th": _style(
            display="table-cell",
            background_color=TABLE_HEADER_BG,
            border=f"1px solid {TABLE_BORDER}",
            padding="12px 8px",
            text_align="left",
            font_weight="600",
        ),
        "td": _style(
            display="table-cell",
            border=f"1px solid {TABLE_BORDER}",
            padding="10px 8px",
            text_align="left",
        ),
        "code": _style(
            display="inline",
            font_family=MONO_STACK,
            background=CODE_BG,
            padding="2px 6px",
            border_radius="3px",
            font_size="13px",
        ),
        "pre": _style(
            display="block",
            background=CODE_BG,
            padding="16px",
            border_radius="6px",
            overflow_x="auto",
            margin="16px 0",
            page_break_inside="avoid",
        ),
    }
)


def to_css(style: Style) -> str:
    return "; ".join(f"{k}: {v}" for k, v in style.items()) + ";"


def parse_css(text: str | None) -> dict[str, str]:
    """Parse an inline ``style`` attribute into a dict."""

    out: dict[str, str] = {}
    for decl in (text or "").split(";"):
        if ":" not in decl:
            continue
        key, value = decl.split(":", 1)
        key = key.strip().lower()
        if key:
            out[key] = value.strip()
    return out


def apply_inline_styles(container: Tag) -> Tag:
    """Restyle ``container`` and every element below it in place.

    Existing inline styles are replaced, never merged, so applying the table twice gives the same
    result as applying it once.
    """

    container["style"] = to_css(CONTAINER_STYLE)
    for kind, style in STYLE_TABLE.items():
        css = to_css(style)
        for el in container.find_all(kind):
            el["style"] = css
    for table in container.find_all("table"):
        for row in table.select("tr:nth-child(even)"):
            row["style"] = f"background-color: {TABLE_STRIPE_BG};"
    return container
