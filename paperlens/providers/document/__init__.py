from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.providers.document.pymupdf_document import PyMuPDFDocument

__all__ = ["InMemoryDocument", "PyMuPDFDocument"]
