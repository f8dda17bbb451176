"""Scraper for the photos, videos and albums of Facebook groups."""

__version__ = "0.1.0"
