"""Zone confidence engine: how far to trust crowd-sourced intel about a zone."""

__version__ = "0.1.0"
