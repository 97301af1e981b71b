"""Media syndication workflow engine."""

from syndication.version import __version__

__all__ = ["__version__"]
