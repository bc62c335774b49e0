"""histsync: encrypted shell-history sync server."""

__version__ = "0.1.0"
