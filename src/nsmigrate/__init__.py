"""nsmigrate: namespace migration planning and batch refactoring."""

__version__ = "0.1.0"
