"""Local music library server with byte-range streaming."""

__version__ = "1.0.0"
