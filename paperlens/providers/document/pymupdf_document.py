"""PDF document handle backed by PyMuPDF (fitz).

Wraps an open ``fitz.Document`` behind
:class:`~paperlens.interfaces.document_source.IDocumentSource`.  The
document id is the SHA-256 of the file bytes, so two handles opened on the
same file (or the same bytes) share cached briefs.

Scanned pages without a text layer come back as ``None``; OCR is out of
scope.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from types import TracebackType

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from paperlens.interfaces.document_source import IDocumentSource
from paperlens.utils.errors import IngestionError

logger = structlog.get_logger(logger_name=__name__)

# PDF metadata keys worth surfacing, mapped to our lower-case names.
_METADATA_KEYS = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "keywords": "keywords",
    "creator": "creator",
    "producer": "producer",
    "creationDate": "creation_date",
}


class PyMuPDFDocument(IDocumentSource):
    """Read-only handle on a PDF file.

    Use :meth:`open` for a path or :meth:`from_bytes` for in-memory data.
    The handle should be closed when done; it is also a context manager.
    """

    def __init__(self, doc: fitz.Document, document_id: str, name: str = "") -> None:
        self._doc = doc
        self._document_id = document_id
        self._name = name

    @classmethod
    def open(cls, path: str | Path) -> PyMuPDFDocument:
        """Open the PDF at *path*.

        Raises
        ------
        IngestionError
            If the file cannot be read or is not a PDF PyMuPDF understands.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise IngestionError(message=f"Cannot read {path}: {exc}") from exc
        return cls.from_bytes(data, name=path.name)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "") -> PyMuPDFDocument:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            logger.error("pdf_open_failed", name=name, error=str(exc))
            raise IngestionError(message=f"Cannot open PDF {name or '<bytes>'}: {exc}") from exc

        document_id = hashlib.sha256(data).hexdigest()
        logger.info("pdf_opened", name=name, pages=doc.page_count, document_id=document_id[:12])
        return cls(doc, document_id=document_id, name=name)

    # ------------------------------------------------------------------
    # IDocumentSource implementation
    # ------------------------------------------------------------------

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def page_text(self, index: int) -> str | None:
        if not 0 <= index < self._doc.page_count:
            raise IndexError(f"page index {index} out of range 0..{self._doc.page_count - 1}")
        text = self._doc[index].get_text("text")
        return text or None

    def metadata(self) -> dict[str, str]:
        raw = self._doc.metadata or {}
        meta = {ours: str(raw[key]).strip() for key, ours in _METADATA_KEYS.items() if raw.get(key)}
        if "title" not in meta and self._name:
            meta["title"] = Path(self._name).stem
        return meta

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> PyMuPDFDocument:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
