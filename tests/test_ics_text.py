from __future__ import annotations

from icalendar import vText

from bili_calendar.core.ics_text import escape_ics_text, join_lines


def test_escape_backslash_first() -> None:
    assert escape_ics_text("a\\b;c,d\ne") == "a\\\\b\\;c\\,d\\ne"


def test_escape_plain_text_is_unchanged() -> None:
    text = "普通文本 abc: 第1话 (2025)"
    assert escape_ics_text(text) == text


def test_escape_twice_double_escapes() -> None:
    once = escape_ics_text("a,b")
    assert escape_ics_text(once) == "a\\\\\\,b"


def test_escape_none_is_empty() -> None:
    assert escape_ics_text(None) == ""


def test_escaped_text_reads_back_through_icalendar() -> None:
    text = "路径 C:\\temp; 第1,2话\n下一行"
    assert vText.from_ical(escape_ics_text(text)) == text


def test_join_lines_uses_crlf() -> None:
    assert join_lines(["A", "B"]) == "A\r\nB\r\n"
