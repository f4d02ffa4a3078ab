"""taskwave - dependency-aware, wave-parallel task scheduling."""

__version__ = "0.1.0"
