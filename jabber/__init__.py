"""Jabber — chat, search and image proxy for the Jabber browser widget."""

__version__ = "1.0.0"
