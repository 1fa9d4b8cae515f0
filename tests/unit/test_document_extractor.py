"""Unit tests for DocumentExtractor — range, expression and budgeted extraction."""

from __future__ import annotations

import pytest

from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.services.extraction.extractor import DocumentExtractor, format_page_block
from paperlens.utils.errors import BudgetExceededError, InvalidPageRangeError
from paperlens.utils.tokens import estimate_tokens


def _doc(*pages: str | None) -> InMemoryDocument:
    return InMemoryDocument(list(pages), document_id="doc")


@pytest.fixture()
def extractor() -> DocumentExtractor:
    return DocumentExtractor(max_token_budget=16000)


class TestExtractRange:
    def test_pages_are_marked_and_joined(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("A", "B", "C"), [2, 0])
        assert result.text == "--- Page 1 ---\nA\n\n--- Page 3 ---\nC"
        assert result.page_start == 0
        assert result.page_end == 3
        assert result.total_page_count == 3

    def test_invalid_indices_are_ignored(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("A", "B", "C"), [-1, 1, 7])
        assert result.text == "--- Page 2 ---\nB"
        assert result.covered_pages == range(1, 2)

    def test_no_valid_index_gives_empty_result(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("A"), [5])
        assert result.is_empty
        assert result.estimated_tokens == 0
        assert result.total_page_count == 1

    def test_pages_without_text_are_skipped(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("A", None, "   ", "D"), range(4))
        assert result.text == "--- Page 1 ---\nA\n\n--- Page 4 ---\nD"

    def test_page_text_is_cleaned(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("  spaced    out\n\n\n\nnext-\nline  "), [0])
        assert result.text == "--- Page 1 ---\nspaced out\n\nnextline"

    def test_estimate_matches_text(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_range(_doc("Sparse 注意力", "routing"), [0, 1])
        assert result.estimated_tokens == estimate_tokens(result.text)


class TestExtractByRangeExpression:
    def test_one_based_expression(self, extractor: DocumentExtractor) -> None:
        result = extractor.extract_by_range_expression(_doc("A", "B", "C", "D"), "2-3")
        assert result.text == f"{format_page_block(1, 'B')}\n\n{format_page_block(2, 'C')}"

    def test_invalid_expression_raises(self, extractor: DocumentExtractor) -> None:
        with pytest.raises(InvalidPageRangeError):
            extractor.extract_by_range_expression(_doc("A"), "abc")


class TestExtractWithBudget:
    @pytest.fixture()
    def long_doc(self) -> InMemoryDocument:
        # Each block is "--- Page N ---\n" (15 chars) + 400 chars = 103 tokens.
        return _doc("x" * 400, "y" * 400, "z" * 400)

    def test_stops_before_the_page_that_overflows(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        result = extractor.extract_with_budget(long_doc, token_ceiling=210)
        assert result.text.count("--- Page") == 2
        assert result.page_start == 0
        assert result.page_end == 2
        assert result.estimated_tokens == 208

    def test_result_never_exceeds_ceiling(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        for ceiling in (0, 50, 103, 104, 207, 208, 311, 1000):
            result = extractor.extract_with_budget(long_doc, token_ceiling=ceiling)
            assert result.estimated_tokens <= ceiling
            assert result.estimated_tokens == estimate_tokens(result.text)

    def test_whole_document_when_budget_allows(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        result = extractor.extract_with_budget(long_doc)
        assert result.text.count("--- Page") == 3
        assert result.page_end == 3

    def test_nothing_fits_returns_empty_by_default(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        result = extractor.extract_with_budget(long_doc, token_ceiling=10)
        assert result.is_empty
        assert result.total_page_count == 3

    def test_nothing_fits_raises_when_strict(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        with pytest.raises(BudgetExceededError):
            extractor.extract_with_budget(long_doc, token_ceiling=10, strict=True)

    def test_strict_does_not_raise_when_a_page_fits(
        self, extractor: DocumentExtractor, long_doc: InMemoryDocument
    ) -> None:
        result = extractor.extract_with_budget(long_doc, token_ceiling=150, strict=True)
        assert result.text.startswith("--- Page 1 ---")

    def test_default_ceiling_is_the_extractor_budget(self, long_doc: InMemoryDocument) -> None:
        result = DocumentExtractor(max_token_budget=110).extract_with_budget(long_doc)
        assert result.text.count("--- Page") == 1


class TestDocumentInfo:
    def test_reports_metadata_and_tokens(self, extractor: DocumentExtractor) -> None:
        doc = InMemoryDocument(
            ["Title page", "Body"],
            document_id="abc",
            metadata={"title": "Sparse Routing", "author": "A. Researcher"},
        )
        info = extractor.document_info(doc)
        assert info.document_id == "abc"
        assert info.page_count == 2
        assert info.title == "Sparse Routing"
        assert info.author == "A. Researcher"
        assert info.estimated_tokens > 0

    def test_missing_metadata_is_none(self, extractor: DocumentExtractor) -> None:
        info = extractor.document_info(_doc("A"))
        assert info.title is None
        assert info.author is None
