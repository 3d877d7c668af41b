"""Commit message splitting.

Notifications show the subject line and, when there is one, a short body.
Trailing footer blocks (``Signed-off-by:``, ``Fixes: ...``, bare
``Closes #12``) are noise in that context and are dropped. The detection is
a heuristic: a body paragraph that happens to look like a footer (a line
starting with ``http:`` for instance) is stripped as well.
"""

import re

_TRAILER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+:")
_LAZY_CLOSING_PATTERN = re.compile(
    r"^(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\b", re.IGNORECASE
)


def is_trailer_line(line: str) -> bool:
    """Return True if *line* looks like a footer line."""
    return bool(_TRAILER_PATTERN.match(line) or _LAZY_CLOSING_PATTERN.match(line))


def split_message(message: str) -> tuple[str, str | None]:
    """Split a raw commit message into ``(subject, body)``.

    The body is ``None`` when the message is a single line or when everything
    after the subject is footer material. When the last paragraph mixes footer
    and regular lines, nothing is stripped.
    """
    subject, newline, remainder = message.partition("\n")
    if not newline:
        return message, None

    lines = remainder.split("\n")
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    lines = lines[start:]

    end = len(lines)
    body_end = end
    i = end
    while i > 0:
        line = lines[i - 1]
        if not line.strip():
            # Paragraph boundary: everything after it was footer material
            body_end = i - 1
        elif not is_trailer_line(line):
            break
        i -= 1
    else:
        return subject, None

    body = "\n".join(lines[:body_end]).strip()
    return subject, body or None
