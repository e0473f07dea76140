"""Memory and dependency coordination core for multi-agent research sessions."""

__version__ = "0.1.0"
