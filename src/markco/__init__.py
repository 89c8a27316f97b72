"""Threaded comments stored inside Markdown documents."""

__version__ = "0.3.0"
