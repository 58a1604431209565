"""Command line tools to list, format, convert to PYX, transform, query and validate XML."""

__version__ = "1.0.0"