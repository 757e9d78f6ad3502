"""httpwatch - run .http request files and re-run them when files change."""

__version__ = "0.1.0"
