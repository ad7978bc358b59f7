"""nexussync - Keep local files in sync with artifacts published on a Nexus server."""

__version__ = "0.1.0"
