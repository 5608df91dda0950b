from utils.text import clean_text, normalize_paragraph


def test_clean_text_collapses_whitespace():
    assert clean_text("  Series\nTitle \t ") == "Series Title"


def test_clean_text_non_string():
    assert clean_text(None) == ""
    assert clean_text(123) == ""


def test_normalize_paragraph_keeps_fullwidth_indent():
    assert normalize_paragraph("　彼は言った。\n") == "　彼は言った。"


def test_normalize_paragraph_drops_control_characters():
    assert normalize_paragraph("a\u0000b\u200bc") == "abc"


def test_normalize_paragraph_none():
    assert normalize_paragraph(None) == ""
