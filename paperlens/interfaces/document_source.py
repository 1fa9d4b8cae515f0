"""Abstract base class for paginated document handles.

The extraction layer never touches a PDF library directly; it reads pages
through this contract.  Implementations may wrap PyMuPDF, an in-memory list
of page strings (plain text, tests), or any other paginated source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: PyMuPDFDocument, InMemoryDocument
# Located in: paperlens/providers/document/
class IDocumentSource(ABC):
    """Read-only access to the text layer of a paginated document."""

    @property
    @abstractmethod
    def document_id(self) -> str:
        """Stable identity of the document, used as a cache key.

        Two handles opened on the same document must return the same id.
        """

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def page_text(self, index: int) -> str | None:
        """Return the raw text layer of page *index*.

        Parameters
        ----------
        index:
            Zero-based page index, ``0 <= index < page_count``.

        Returns
        -------
        str or None
            The uncleaned page text, or ``None`` when the page has no text
            layer (e.g. a scanned image).

        Raises
        ------
        IndexError
            If *index* is out of range.
        """

    def metadata(self) -> dict[str, str]:
        """Return document metadata such as ``title`` and ``author``.

        Keys are lower-case; missing values are omitted.  The default
        implementation has no metadata.
        """
        return {}
