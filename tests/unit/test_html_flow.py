"""Tests for body markup to paragraph conversion."""

from backend.esign.pdf.html_flow import html_to_paragraphs


def test_plain_text_one_paragraph_per_line() -> None:
    paragraphs = html_to_paragraphs("Dòng 1\n\nDòng 2 & 3")

    assert [p.markup for p in paragraphs] == ["Dòng 1", "Dòng 2 &amp; 3"]


def test_block_tags_become_paragraphs_with_styles() -> None:
    paragraphs = html_to_paragraphs("<h2>Điều 1</h2><p>Nội <strong>dung</strong></p>")

    assert [(p.style, p.markup) for p in paragraphs] == [
        ("heading", "Điều 1"),
        ("body", "Nội <b>dung</b>"),
    ]


def test_ordered_list_is_numbered() -> None:
    paragraphs = html_to_paragraphs("<ol><li>Một</li><li>Hai</li></ol><ul><li>Ba</li></ul>")

    assert [p.markup for p in paragraphs] == ["1. Một", "2. Hai", "• Ba"]


def test_alignment_is_kept() -> None:
    (paragraph,) = html_to_paragraphs('<p style="text-align: center">Giữa</p>')

    assert paragraph.alignment == "center"


def test_scripts_and_unknown_tags_dropped() -> None:
    paragraphs = html_to_paragraphs("<script>alert(1)</script><p><span>Giữ</span> lại</p>")

    assert [p.markup for p in paragraphs] == ["Giữ lại"]


def test_unclosed_inline_tags_are_balanced() -> None:
    (paragraph,) = html_to_paragraphs("<p><b>Đậm")

    assert paragraph.markup == "<b>Đậm</b>"


def test_table_cells_joined() -> None:
    paragraphs = html_to_paragraphs("<table><tr><th>A</th><td>B</td></tr></table>")

    assert paragraphs[0].markup == "<b>A</b> | B"
