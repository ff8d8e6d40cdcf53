"""relsync - keep CHANGES, release branches, tags and releases in sync."""

__version__ = "0.1.0"
