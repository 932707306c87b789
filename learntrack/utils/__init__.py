"""Cross-cutting utilities.

Modules:
    logging: structlog configuration.
    youtube_urls: YouTube URL parsing and duration formatting.
"""
