"""Analysis functions."""

from .scoring import analyze

__all__ = ["analyze"]
