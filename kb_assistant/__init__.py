"""KB Assistant backend: knowledge-grounded chat with streamed answers."""

__version__ = "0.1.0"
