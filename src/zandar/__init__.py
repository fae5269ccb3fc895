"""Zandar: a personal start page of pages, widgets and links."""

__version__ = "0.3.0"
