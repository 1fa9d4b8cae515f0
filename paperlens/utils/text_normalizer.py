"""Cleanup for text pulled out of PDF pages.

PDF text layers come back with ragged spacing: runs of spaces from justified
columns, blank-line padding between blocks, indentation on every line, and
words split across line ends with a hyphen.  :func:`clean_page_text` flattens
these so downstream chunking sees one blank line between paragraphs.
"""

import re

_MULTI_SPACE = re.compile(r" {2,}")
_MULTI_NEWLINE = re.compile(r"\n{3,}")


def clean_page_text(text: str) -> str:
    """Normalize whitespace in raw page text.

    Steps, in order: collapse runs of spaces to one, strip each line, collapse
    three or more newlines to two, then remove ``-`` + line break so words
    wrapped across lines are rejoined.

    Args:
        text: Raw text of one page.

    Returns:
        Cleaned text with surrounding whitespace removed.
    """
    result = text.replace("\r\n", "\n").replace("\r", "\n")
    result = _MULTI_SPACE.sub(" ", result)
    # Lines are stripped before newline collapsing so whitespace-only lines
    # between paragraphs collapse too.
    result = "\n".join(line.strip() for line in result.split("\n"))
    result = _MULTI_NEWLINE.sub("\n\n", result)
    result = result.replace("-\n", "")
    return result.strip()
