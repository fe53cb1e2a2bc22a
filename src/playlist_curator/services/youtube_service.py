"""YouTube metadata lookup using yt-dlp for building a corpus."""

import logging
import yt_dlp
from typing import List, Dict, Optional

from playlist_curator.models.media import Corpus, MediaItem, sanitize_category_name
from playlist_curator.utils.retry import retry_api_call, NetworkError, TemporaryServiceError

logger = logging.getLogger(__name__)

# Configure yt-dlp logging to be silent
logging.getLogger("yt_dlp").setLevel(logging.CRITICAL)
logging.getLogger("yt_dlp.extractor").setLevel(logging.CRITICAL)


class YouTubeService:
    """Service for reading playlist and video metadata with yt-dlp."""

    def __init__(self, max_results: int = 200):
        """Initialize YouTube metadata service.

        Args:
            max_results: Maximum number of playlist entries to read
        """
        self.max_results = max_results

        self.ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "extract_flat": "in_playlist",
            "ignoreerrors": True,
            "playlistend": max_results,
        }

    @retry_api_call(max_retries=3, base_delay=2.0)
    def fetch_playlist(self, playlist_url: str) -> List[MediaItem]:
        """Read the entries of a playlist (or a single video) as media items."""
        if not playlist_url.strip():
            return []

        logger.info(f"Fetching YouTube metadata for: {playlist_url}")

        try:
            with yt_dlp.YoutubeDL(self.ydl_opts) as ydl:
                info = ydl.extract_info(playlist_url, download=False)
        except Exception as e:
            logger.error(f"YouTube lookup failed for '{playlist_url}': {e}")
            if "network" in str(e).lower() or "connection" in str(e).lower():
                raise NetworkError(f"Network error: {e}")
            elif "unavailable" in str(e).lower():
                raise TemporaryServiceError(f"YouTube unavailable: {e}")
            raise

        if not info:
            return []

        entries = info.get("entries")
        if entries is None:
            entries = [info]

        items = []
        for entry in entries:
            if entry is None:
                continue
            item = self._parse_video_entry(entry)
            if item:
                items.append(item)

        logger.info(f"Read {len(items)} videos from {playlist_url}")
        return items

    def fetch_corpus(self, playlist_url: str, category: Optional[str] = None) -> Corpus:
        """Build a one-category corpus from a playlist."""
        items = self.fetch_playlist(playlist_url)
        name = sanitize_category_name(category or "youtube")
        return Corpus(ordering=[name], items_by_category={name: items})

    def _parse_video_entry(self, entry: Dict) -> Optional[MediaItem]:
        """Parse a yt-dlp video entry into a MediaItem."""
        try:
            video_id = entry.get("id")
            if not video_id:
                return None

            thumbnails = entry.get("thumbnails") or []
            thumbnail = entry.get("thumbnail") or (thumbnails[-1].get("url") if thumbnails else None)

            return MediaItem(
                url=f"https://www.youtube.com/watch?v={video_id}",
                title=entry.get("title") or "Unknown Title",
                description=entry.get("description") or "",
                duration_seconds=int(entry.get("duration") or 0),
                channel_name=entry.get("channel") or entry.get("uploader"),
                thumbnail_ref=thumbnail,
            )

        except Exception as e:
            logger.warning(f"Failed to parse video entry: {e}")
            return None
