"""Page text extraction with page markers and token budgets.

Reads the text layer of an :class:`~paperlens.interfaces.document_source.IDocumentSource`
page by page, cleans it with :func:`~paperlens.utils.text_normalizer.clean_page_text`,
and formats each non-empty page as::

    --- Page 3 ---
    cleaned text of page 3

Page blocks are joined with a blank line.  Three extraction modes cover
the ways a chat turn selects document context:

1. **Explicit pages** (:meth:`DocumentExtractor.extract_range`) -- e.g. the
   page the reader is looking at.
2. **Range expression** (:meth:`DocumentExtractor.extract_by_range_expression`)
   -- e.g. ``"1-5,8"`` typed by the reader.
3. **Budgeted** (:meth:`DocumentExtractor.extract_with_budget`) -- pages from
   the start of the document until the next page would push the estimate
   over the token ceiling.

Budgeted extraction tracks character tallies instead of re-estimating the
growing text, so its cost stays linear in the document length.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import structlog

from paperlens.interfaces.document_source import IDocumentSource
from paperlens.models.document import DocumentInfo, ExtractionResult
from paperlens.services.extraction.page_range import parse_page_range
from paperlens.utils.errors import BudgetExceededError
from paperlens.utils.text_normalizer import clean_page_text
from paperlens.utils.tokens import CharTally, estimate_tokens

logger = structlog.get_logger(logger_name=__name__)

PAGE_SEPARATOR = "\n\n"
_SEPARATOR_TALLY = CharTally.of(PAGE_SEPARATOR)


def format_page_block(index: int, text: str) -> str:
    """Return the marker-prefixed block for zero-based page *index*."""
    return f"--- Page {index + 1} ---\n{text}"


class DocumentExtractor:
    """Extracts cleaned, page-marked text from a document.

    Parameters
    ----------
    max_token_budget:
        Ceiling used by :meth:`extract_with_budget` when the caller passes
        none (default 16000).
    """

    def __init__(self, max_token_budget: int = 16000) -> None:
        self._max_token_budget = max_token_budget

    # ------------------------------------------------------------------
    # Page access
    # ------------------------------------------------------------------

    def iter_pages(
        self, document: IDocumentSource, indices: Iterable[int] | None = None
    ) -> Iterator[tuple[int, str]]:
        """Yield ``(index, cleaned_text)`` for each requested page that has text.

        Pages whose text layer is missing or cleans to nothing are skipped.
        """
        if indices is None:
            indices = range(document.page_count)
        for index in indices:
            raw = document.page_text(index)
            if not raw:
                continue
            cleaned = clean_page_text(raw)
            if cleaned:
                yield index, cleaned

    # ------------------------------------------------------------------
    # Extraction modes
    # ------------------------------------------------------------------

    def extract_range(self, document: IDocumentSource, pages: Iterable[int]) -> ExtractionResult:
        """Extract the given zero-based pages in ascending order.

        Indices outside the document are ignored.  The covered range spans
        the lowest to highest valid index requested, including pages that
        turned out to have no text.
        """
        page_count = document.page_count
        indices = sorted({i for i in pages if 0 <= i < page_count})
        if not indices:
            return ExtractionResult(total_page_count=page_count)

        blocks = [format_page_block(i, text) for i, text in self.iter_pages(document, indices)]
        text = PAGE_SEPARATOR.join(blocks)
        return ExtractionResult(
            text=text,
            total_page_count=page_count,
            page_start=indices[0],
            page_end=indices[-1] + 1,
            estimated_tokens=estimate_tokens(text),
        )

    def extract_by_range_expression(
        self, document: IDocumentSource, expression: str
    ) -> ExtractionResult:
        """Extract the pages selected by a one-based range expression.

        Raises
        ------
        InvalidPageRangeError
            If the expression selects no pages.
        """
        indices = parse_page_range(expression, document.page_count)
        return self.extract_range(document, indices)

    def extract_with_budget(
        self,
        document: IDocumentSource,
        token_ceiling: int | None = None,
        strict: bool = False,
    ) -> ExtractionResult:
        """Extract pages from the start until the token ceiling would be exceeded.

        The page that would push the estimate past the ceiling is not
        included, and nothing after it is either, so the result is always a
        prefix of the document with ``estimated_tokens <= token_ceiling``.

        Parameters
        ----------
        document:
            The document to read.
        token_ceiling:
            Maximum estimated tokens; defaults to the extractor's budget.
        strict:
            When ``True``, raise instead of returning an empty result if the
            first page with text alone exceeds the ceiling.

        Raises
        ------
        BudgetExceededError
            Only with ``strict=True``, when no page fits.
        """
        ceiling = self._max_token_budget if token_ceiling is None else token_ceiling
        page_count = document.page_count

        blocks: list[str] = []
        tally = CharTally()
        last_included = -1
        truncated = False

        for index, text in self.iter_pages(document):
            block = format_page_block(index, text)
            candidate = tally + CharTally.of(block)
            if blocks:
                candidate = candidate + _SEPARATOR_TALLY
            if candidate.tokens > ceiling:
                truncated = True
                break
            blocks.append(block)
            tally = candidate
            last_included = index

        if truncated:
            logger.debug(
                "budget_extraction_truncated",
                token_ceiling=ceiling,
                pages_included=len(blocks),
                stopped_before_page=last_included + 2 if blocks else 1,
            )

        if not blocks and truncated and strict:
            raise BudgetExceededError(
                message=f"First page with text does not fit a {ceiling}-token budget"
            )

        return ExtractionResult(
            text=PAGE_SEPARATOR.join(blocks),
            total_page_count=page_count,
            page_start=0,
            page_end=last_included + 1,
            estimated_tokens=tally.tokens,
        )

    # ------------------------------------------------------------------
    # Document info
    # ------------------------------------------------------------------

    def document_info(self, document: IDocumentSource) -> DocumentInfo:
        """Summarize metadata plus the token estimate of the whole document."""
        meta = document.metadata()
        blocks = [format_page_block(i, text) for i, text in self.iter_pages(document)]
        return DocumentInfo(
            document_id=document.document_id,
            page_count=document.page_count,
            title=meta.get("title") or None,
            author=meta.get("author") or None,
            subject=meta.get("subject") or None,
            keywords=meta.get("keywords") or None,
            estimated_tokens=estimate_tokens(PAGE_SEPARATOR.join(blocks)),
        )
