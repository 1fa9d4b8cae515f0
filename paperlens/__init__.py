"""PaperLens: ask questions about research papers with streaming language models."""

__version__ = "0.1.0"
