"""Timed, proctored classroom quiz sessions."""

__version__ = "1.0.0"
