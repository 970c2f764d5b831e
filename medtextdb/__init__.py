"""MedTextDB: a local catalogue of medical textbooks with ratings and comments."""

__version__ = "1.0.0"
