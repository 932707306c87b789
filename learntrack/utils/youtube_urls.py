"""YouTube URL and duration helpers.

Pure functions shared by the YouTube client, the import flow and the
aggregator. No I/O.
"""

import re

_PLAYLIST_ID = re.compile(r"[?&]list=([^&#?]+)")

_ISO8601_DURATION = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")

WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


def extract_playlist_id(url: str) -> str | None:
    """Extract the playlist id from a YouTube URL.

    Example:
        >>> extract_playlist_id("https://www.youtube.com/playlist?list=PL123")
        'PL123'
    """
    match = _PLAYLIST_ID.search(url)
    return match.group(1) if match else None


def watch_url(video_id: str) -> str:
    return WATCH_URL_TEMPLATE.format(video_id=video_id)


def parse_iso8601_duration(duration: str | None) -> int:
    """Parse a YouTube contentDetails duration (e.g. "PT1H2M3S") to seconds.

    Returns 0 for missing or unparseable values (live streams report "P0D").
    """
    if not duration:
        return 0

    match = _ISO8601_DURATION.match(duration.strip())
    if not match:
        return 0

    days, hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    """Format seconds as H:MM:SS, or M:SS under one hour.

    Example:
        >>> format_duration(3725)
        '1:02:05'
        >>> format_duration(65)
        '1:05'
    """
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
