"""Client-side tools for the team chat API."""

__version__ = "0.1.0"
