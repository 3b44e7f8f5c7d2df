"""Task and salary workflow engine for a small-company HR portal."""

__version__ = "0.1.0"
