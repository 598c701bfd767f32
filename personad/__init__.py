"""personad: REST daemon for persona chat with SSE streaming."""

__version__ = "0.1.0"
