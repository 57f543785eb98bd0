"""Mastery engine: per-concept skill tracking and next-task selection."""

__version__ = "0.1.0"
