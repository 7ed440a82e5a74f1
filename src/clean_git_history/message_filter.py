"""Removal of AI attribution lines from commit messages.

Runs in-process for previews and tests, and as ``git filter-branch``'s
``--msg-filter`` via ``python -m clean_git_history.message_filter``: the old
message arrives on stdin and the cleaned one is written to stdout.
"""

import re
import sys
from re import Pattern

# Whole-line markers, matched with surrounding whitespace tolerated
MARKER_PATTERNS: list[Pattern[str]] = [
    # "Generated with" notice, current and older link forms
    re.compile(
        r"^[ \t]*(?:🤖[ \t]*)?Generated with \[Claude Code\]"
        r"\(https://(?:claude\.com/claude-code|claude\.ai/code)\)[ \t]*$",
        re.MULTILINE,
    ),
    # Co-author trailer, any model suffix in the display name
    re.compile(
        r"^[ \t]*Co-Authored-By:[ \t]*Claude\b[^<\n]*<noreply@anthropic\.com>[ \t]*$",
        re.MULTILINE | re.IGNORECASE,
    ),
]


def _is_marker(line: str) -> bool:
    return any(pattern.match(line) for pattern in MARKER_PATTERNS)


def has_attribution(message: str) -> bool:
    """Check whether a message carries any attribution marker line."""
    return any(pattern.search(message) for pattern in MARKER_PATTERNS)


def clean_message(message: str) -> str:
    """Strip attribution marker lines from a commit message.

    Messages without a marker are returned untouched. Otherwise the marker
    lines are removed, the blank lines around each removed block collapse to
    a single blank line, and the result ends with exactly one newline. Blank
    lines elsewhere are kept and text is never reflowed.

    Args:
        message: The commit message

    Returns:
        The cleaned commit message
    """
    if not has_attribution(message):
        return message

    kept: list[str] = []
    # marker lines were dropped since the last kept line
    in_gap = False
    blank_in_gap = False
    for line in message.split("\n"):
        if _is_marker(line):
            while kept and not kept[-1].strip():
                kept.pop()
                blank_in_gap = True
            in_gap = True
            continue
        if in_gap:
            if not line.strip():
                blank_in_gap = True
                continue
            if kept and blank_in_gap:
                kept.append("")
            in_gap = blank_in_gap = False
        kept.append(line)

    while kept and not kept[-1].strip():
        kept.pop()
    # a message that was nothing but markers stays a valid (empty) message
    return "\n".join(kept) + "\n" if kept else ""


def main() -> None:
    """Filter one commit message from stdin to stdout."""
    raw = sys.stdin.buffer.read()
    message = raw.decode("utf-8", errors="surrogateescape")
    cleaned = clean_message(message)
    if cleaned is message:
        sys.stdout.buffer.write(raw)
    else:
        sys.stdout.buffer.write(cleaned.encode("utf-8", errors="surrogateescape"))
    sys.stdout.buffer.flush()


if __name__ == "__main__":
    main()
