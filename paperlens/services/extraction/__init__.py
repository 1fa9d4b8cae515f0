"""Page text extraction, page range parsing and budgeted extracts."""

from paperlens.services.extraction.extractor import DocumentExtractor
from paperlens.services.extraction.page_range import parse_page_range

__all__ = ["DocumentExtractor", "parse_page_range"]
