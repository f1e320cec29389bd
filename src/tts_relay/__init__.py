"""Text and subtitle to speech relay service."""

__version__ = "0.1.0"
