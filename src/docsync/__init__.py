"""docsync - documentation embedding sync pipeline."""

__version__ = "0.1.0"
