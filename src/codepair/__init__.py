"""CodePair - session-aware AI code completion."""

__version__ = "0.1.0"
