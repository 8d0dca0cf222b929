"""Tests for heading extraction and anchor ids."""

from __future__ import annotations

from researchviewer.outline.indexer import AnchorAllocator, extract_headings, generate_heading_id


def test_generate_heading_id_normalizes_text() -> None:
    """It should lower-case, collapse non-alphanumeric runs and trim dashes."""

    assert generate_heading_id("Revenue Growth (2024)") == "revenue-growth-2024"
    assert generate_heading_id("  --Hello,   World!--  ") == "hello-world"
    assert generate_heading_id("Risks & <em>Mitigants</em>") == "risks-mitigants"


def test_generate_heading_id_coerces_non_strings() -> None:
    """It should accept non-string input without raising."""

    assert generate_heading_id(None) == ""
    assert generate_heading_id(2024) == "2024"


def test_extract_headings_levels_and_order() -> None:
    """It should keep levels 1 to 3 in document order and skip deeper headings."""

    markup = "# Title\n\ntext\n## Section A\n### Detail\n#### Too deep\n## Section B\n"
    outline = extract_headings(markup)

    assert [(e.level, e.text, e.anchor_id) for e in outline] == [
        (1, "Title", "title"),
        (2, "Section A", "section-a"),
        (3, "Detail", "detail"),
        (2, "Section B", "section-b"),
    ]


def test_extract_headings_requires_space_after_hashes() -> None:
    """It should ignore lines like '#hashtag' and bare hashes."""

    assert extract_headings("#hashtag\n#\n##   \nplain") == []


def test_extract_headings_handles_empty_and_malformed_input() -> None:
    """It should return an empty outline instead of raising."""

    assert extract_headings("") == []
    assert extract_headings(None) == []  # type: ignore[arg-type]


def test_duplicate_headings_get_unique_anchors() -> None:
    """It should suffix repeated headings so every anchor is unique."""

    outline = extract_headings("## Overview\n## Overview\n## Overview\n")
    assert [e.anchor_id for e in outline] == ["overview", "overview-1", "overview-2"]


def test_allocator_skips_taken_suffixes() -> None:
    """It should not hand out an id that a literal heading already uses."""

    allocator = AnchorAllocator()
    assert allocator.allocate("Overview 1") == "overview-1"
    assert allocator.allocate("Overview") == "overview"
    assert allocator.allocate("Overview") == "overview-2"


def test_allocator_falls_back_for_symbol_only_headings() -> None:
    """It should give headings without alphanumerics a usable id."""

    allocator = AnchorAllocator()
    assert allocator.allocate("!!!") == "section"
    assert allocator.allocate("???") == "section-1"


def test_headings_inside_code_fences_are_ignored() -> None:
    """It should not treat comment lines in fenced code as headings."""

    markup = "# Real\n```bash\n# not a heading\n```\n## Also real\n"
    assert [e.text for e in extract_headings(markup)] == ["Real", "Also real"]
