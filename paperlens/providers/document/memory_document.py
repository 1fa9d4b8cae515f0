"""Document handle over a list of page strings.

Used for plain-text input in the CLI and throughout the tests.  A page
given as ``None`` behaves like a scanned page with no text layer.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

from paperlens.interfaces.document_source import IDocumentSource


class InMemoryDocument(IDocumentSource):
    """Paginated text held in memory.

    Parameters
    ----------
    pages:
        Raw text of each page, in order.
    document_id:
        Identity used for caching; derived from the page text when omitted.
    metadata:
        Optional ``title``/``author``/... values.
    """

    def __init__(
        self,
        pages: Sequence[str | None],
        document_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self._pages = list(pages)
        self._metadata = dict(metadata or {})
        self._document_id = document_id or self._content_hash(self._pages)

    @classmethod
    def from_text(cls, text: str, **kwargs: object) -> InMemoryDocument:
        """Split *text* into pages on form feeds (``\\f``)."""
        return cls(text.split("\f"), **kwargs)  # type: ignore[arg-type]

    @staticmethod
    def _content_hash(pages: list[str | None]) -> str:
        digest = hashlib.sha256()
        for page in pages:
            digest.update((page or "").encode("utf-8"))
            digest.update(b"\f")
        return digest.hexdigest()

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def page_text(self, index: int) -> str | None:
        if not 0 <= index < len(self._pages):
            raise IndexError(f"page index {index} out of range")
        return self._pages[index]

    def metadata(self) -> dict[str, str]:
        return dict(self._metadata)
