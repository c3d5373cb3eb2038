"""inkwell: front-matter content model and draft/duplicate resolution for blog sources."""

__version__ = "0.1.0"
