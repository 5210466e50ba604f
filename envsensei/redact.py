from __future__ import annotations


def redact(value: str) -> str:
    """Render a potentially-sensitive value for display/logging.

    Only the character count survives; the value itself never does.
    """
    if value is None:
        return "[REDACTED: 0 chars]"
    return f"[REDACTED: {len(value)} chars]"


def redact_in_line(line: str, start: int, end: int) -> str:
    if start < 0 or end < start or end > len(line):
        return line
    return line[:start] + redact(line[start:end]) + line[end:]
