"""Parsing of human-entered page range expressions.

Accepts comma-separated terms such as ``"1-5,8,10-15"`` where pages are
one-based and ranges are inclusive, and produces sorted, de-duplicated,
zero-based page indices.

Input handling is lenient, matching how people actually type ranges:

- Whitespace around terms and bounds is ignored.
- Out-of-range numbers are clamped into ``[1, page_count]`` (``"50"`` on a
  10-page document means page 10; ``"0"`` means page 1).
- A range whose start is past its end after clamping (``"9-3"``) is dropped.
- A term that isn't an integer or an ``a-b`` pair (``"x"``, ``"3-"``,
  ``"1-2-3"``) is dropped.

The expression fails only when no term survives.
"""

from __future__ import annotations

import structlog

from paperlens.utils.errors import InvalidPageRangeError

logger = structlog.get_logger(logger_name=__name__)


def _parse_int(value: str) -> int | None:
    value = value.strip()
    if value.startswith("+"):
        value = value[1:]
    if not value.isdecimal():
        return None
    return int(value)


def _parse_term(term: str, page_count: int) -> range | None:
    """Return the one-based inclusive span *term* selects, as a range, or None."""
    if "-" in term:
        bounds = term.split("-")
        if len(bounds) != 2:
            return None
        start, end = _parse_int(bounds[0]), _parse_int(bounds[1])
        if start is None or end is None:
            return None
        start = max(1, start)
        end = min(page_count, end)
        if start > end:
            return None
        return range(start, end + 1)

    page = _parse_int(term)
    if page is None:
        return None
    page = min(max(1, page), page_count)
    return range(page, page + 1)


def parse_page_range(expression: str, page_count: int) -> list[int]:
    """Parse *expression* into zero-based page indices.

    Parameters
    ----------
    expression:
        Comma-separated one-based pages and inclusive ranges.
    page_count:
        Number of pages in the document; bounds the clamp.

    Returns
    -------
    list[int]
        Ascending, de-duplicated zero-based indices; never empty.

    Raises
    ------
    InvalidPageRangeError
        If the expression is empty, the document has no pages, or every
        term was dropped.
    """
    if page_count <= 0:
        raise InvalidPageRangeError(message="Document has no pages")
    if not expression or not expression.strip():
        raise InvalidPageRangeError(message="Page range expression is empty")

    pages: set[int] = set()
    dropped: list[str] = []
    for raw_term in expression.split(","):
        term = raw_term.strip()
        if not term:
            continue
        span = _parse_term(term, page_count)
        if span is None:
            dropped.append(term)
            continue
        pages.update(page - 1 for page in span)

    if dropped:
        logger.debug("page_range_terms_dropped", expression=expression, dropped=dropped)

    if not pages:
        raise InvalidPageRangeError(
            message=f"Page range '{expression}' selects no pages of a {page_count}-page document"
        )
    return sorted(pages)
