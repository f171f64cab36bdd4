"""inkpress - a static-site build and deploy pipeline for a personal blog."""

__version__ = "0.4.0"
