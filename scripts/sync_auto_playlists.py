#!/usr/bin/env python3
"""Sync every playlist that has auto-sync enabled.

Intended to be run by an external scheduler (cron, Railway cron job, ...):

    DATABASE_URL=... YOUTUBE_API_KEY=... python scripts/sync_auto_playlists.py

Exits with status 1 when any playlist failed to sync.
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load .env before learntrack.database reads DATABASE_URL at import
load_dotenv(project_root / ".env")

from learntrack.clients.youtube import YouTubeClient
from learntrack.config import get_youtube_api_key
from learntrack.database import get_session_factory
from learntrack.exceptions import ConfigurationError
from learntrack.services.playlist_source import YouTubePlaylistSource
from learntrack.services.sync_service import sync_auto_playlists
from learntrack.utils.logging import configure_logging


async def main() -> int:
    configure_logging()

    try:
        session_factory = get_session_factory()
        client = YouTubeClient(api_key=get_youtube_api_key())
    except (RuntimeError, ConfigurationError) as e:
        print(f"ERROR: {e}")
        return 1

    async with client:
        report = await sync_auto_playlists(
            session_factory=session_factory,
            source=YouTubePlaylistSource(client),
        )

    print(
        f"Synced {report.succeeded} playlist(s), {report.failed} failed, "
        f"{report.added_count} new video(s)"
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
