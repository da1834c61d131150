"""Scholar Archive: catalog and archival engine for theses and compiled volumes."""

__version__ = "0.1.0"
