"""Unit tests for the TextChunker — paragraph-aware overlapping text chunking."""

from __future__ import annotations

import pytest

from paperlens.services.ingestion.chunker import TextChunker


def _para(letter: str, tokens: int = 100) -> str:
    """A paragraph of *tokens* estimated tokens (4 ASCII chars per token)."""
    return letter * (tokens * 4)


def _strip_overlap(chunks) -> list[str]:  # noqa: ANN001
    paragraphs: list[str] = []
    for chunk in chunks:
        paragraphs.extend(chunk.text.split("\n\n")[chunk.overlap_paragraphs :])
    return paragraphs


class TestBasicChunking:
    def test_empty_input_gives_no_chunks(self) -> None:
        assert TextChunker().chunk([]) == []
        assert TextChunker().chunk_text("   ") == []

    def test_short_text_is_one_chunk(self) -> None:
        chunks = TextChunker().chunk_text("First paragraph.\n\nSecond paragraph.", page_index=4)
        assert len(chunks) == 1
        assert chunks[0].text == "First paragraph.\n\nSecond paragraph."
        assert chunks[0].page_start == 4
        assert chunks[0].page_end == 5
        assert chunks[0].overlap_paragraphs == 0

    def test_chunk_ids_are_unique(self) -> None:
        text = "\n\n".join(_para(c) for c in "abcdef")
        chunks = TextChunker(chunk_size=250, overlap=100).chunk_text(text)
        assert len({c.chunk_id for c in chunks}) == len(chunks)

    def test_token_count_is_estimated(self) -> None:
        chunks = TextChunker().chunk_text(_para("a", 50))
        assert chunks[0].token_count == 50

    @pytest.mark.parametrize(("size", "overlap"), [(0, 0), (-5, 0), (100, -1)])
    def test_invalid_configuration(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=size, overlap=overlap)


class TestOverlapWindows:
    @pytest.fixture()
    def chunks(self):  # noqa: ANN201
        text = "\n\n".join(_para(c) for c in "abcdef")
        return TextChunker(chunk_size=250, overlap=100).chunk_text(text)

    def test_closes_when_tolerance_would_be_exceeded(self, chunks) -> None:  # noqa: ANN001
        # Limit is 275 tokens: two 100-token paragraphs fit, a third does not.
        assert len(chunks) == 5
        assert all(c.token_count <= 275 for c in chunks)

    def test_next_chunk_starts_with_previous_tail(self, chunks) -> None:  # noqa: ANN001
        for previous, current in zip(chunks, chunks[1:]):
            assert current.overlap_paragraphs == 1
            assert current.text.split("\n\n")[0] == previous.text.split("\n\n")[-1]
        assert chunks[0].overlap_paragraphs == 0

    def test_dropping_overlap_recovers_paragraph_sequence(self, chunks) -> None:  # noqa: ANN001
        assert _strip_overlap(chunks) == [_para(c) for c in "abcdef"]

    def test_zero_overlap_does_not_repeat(self) -> None:
        text = "\n\n".join(_para(c) for c in "abcd")
        chunks = TextChunker(chunk_size=250, overlap=0).chunk_text(text)
        assert [c.overlap_paragraphs for c in chunks] == [0, 0]
        assert _strip_overlap(chunks) == [_para(c) for c in "abcd"]


class TestParagraphPreservation:
    def test_oversized_paragraph_is_not_split(self) -> None:
        huge = _para("z", 1000)
        chunks = TextChunker(chunk_size=250, overlap=50).chunk([(0, f"{_para('a')}\n\n{huge}\n\n{_para('b')}")])
        assert any(c.text == huge or huge in c.text.split("\n\n") for c in chunks)
        for chunk in chunks:
            for paragraph in chunk.text.split("\n\n"):
                assert paragraph in (_para("a"), huge, _para("b"))

    def test_blank_lines_with_spaces_split_paragraphs(self) -> None:
        chunks = TextChunker().chunk_text("one\n   \ntwo")
        assert chunks[0].text == "one\n\ntwo"


class TestPageAttribution:
    def test_chunks_span_the_pages_of_their_paragraphs(self) -> None:
        pages = [
            (0, f"{_para('a')}\n\n{_para('b')}"),
            (1, _para("c")),
            (3, _para("d")),
        ]
        chunks = TextChunker(chunk_size=250, overlap=100).chunk(pages)
        assert (chunks[0].page_start, chunks[0].page_end) == (0, 1)
        assert (chunks[1].page_start, chunks[1].page_end) == (0, 2)
        assert (chunks[2].page_start, chunks[2].page_end) == (1, 4)

    def test_page_label_is_one_based(self) -> None:
        chunk = TextChunker().chunk([(2, "text")])[0]
        assert chunk.page_label == "--- Page 3-3 ---"
