"""Clipboard-driven text correction through interchangeable LLM backends."""

__version__ = "0.1.0"
