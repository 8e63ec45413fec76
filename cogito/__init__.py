"""Thoughts, notes, sessions, event signals and session steps for LLM reasoning chains."""

__version__ = "0.1.0"

__all__ = ["reset", "restore", "signals", "thought", "truncate", "vector"]