"""Aurora: resilient request orchestration for on-demand stock analysis."""

__version__ = "0.1.0"
