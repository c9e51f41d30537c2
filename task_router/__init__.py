"""AI task router for the SDLC toolkit."""

__version__ = "0.1.0"
