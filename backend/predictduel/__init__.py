"""PredictDuel: social yes/no prediction duels with pooled stakes."""

__version__ = "0.1.0"
__author__ = "PredictDuel Team"

__all__ = ["__version__", "__author__"]
