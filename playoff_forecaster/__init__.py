"""NBA playoff qualification forecaster built on team season statistics."""

__version__ = "0.1.0"
