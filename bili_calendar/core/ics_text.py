from __future__ import annotations


def escape_ics_text(text: object) -> str:
    # Backslash first, otherwise the later substitutions get escaped twice.
    value = "" if text is None else str(text)
    return value.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")


def join_lines(lines: list[str]) -> str:
    return "\r\n".join(lines) + "\r\n"
