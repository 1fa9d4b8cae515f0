"""Utility modules for PaperLens.

- **errors** -- Exception hierarchy rooted at PaperLensError; one subclass
  per failure class a caller needs to tell apart (configuration, network,
  HTTP status, decode, cancellation, budget).
- **logging** -- structlog setup with console rendering in development and
  JSON in production.
- **text_normalizer** -- Whitespace and hyphenation cleanup for PDF page
  text.
- **tokens** -- Character-class token estimation used for context budgets.
"""

from paperlens.utils.errors import (
    BudgetExceededError,
    DecodeError,
    ErrorKind,
    IngestionError,
    InvalidConfigurationError,
    InvalidPageRangeError,
    NetworkFailureError,
    PaperLensError,
    ProtocolError,
    RequestCancelledError,
)
from paperlens.utils.logging import configure_logging, get_logger
from paperlens.utils.text_normalizer import clean_page_text
from paperlens.utils.tokens import CharTally, estimate_tokens

__all__ = [
    "BudgetExceededError",
    "CharTally",
    "DecodeError",
    "ErrorKind",
    "IngestionError",
    "InvalidConfigurationError",
    "InvalidPageRangeError",
    "NetworkFailureError",
    "PaperLensError",
    "ProtocolError",
    "RequestCancelledError",
    "clean_page_text",
    "configure_logging",
    "estimate_tokens",
    "get_logger",
]
