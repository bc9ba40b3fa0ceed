"""Summary Desk: PDF uploads, webhook-driven summarization, and summary viewing."""

__version__ = "1.0.0"
