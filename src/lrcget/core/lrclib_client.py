from __future__ import annotations

import logging
from typing import Optional

import requests

from lrcget.core.errors import LyricsProviderError
from lrcget.core.models import LyricsResponse
from lrcget.core.utils import is_instrumental_lrc, norm_text
from lrcget.db.schema import DEFAULT_LRCLIB_INSTANCE

logger = logging.getLogger(__name__)

USER_AGENT = "pylrcget/0.2 (https://github.com/tranxuanthang/lrcget)"


class LrcLibClient:
    def __init__(self, base_url: str = DEFAULT_LRCLIB_INSTANCE, user_agent: str = USER_AGENT, timeout: float = 15):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def get_by_metadata(self, title: str, artist: str, album: str | None, duration_s: float | None) -> Optional[dict]:
        """GET /api/get; None when LRCLIB has no record for this signature."""
        params = {
            "track_name": title,
            "artist_name": artist,
        }
        if album:
            params["album_name"] = album
        if duration_s and duration_s > 0:
            params["duration"] = int(round(duration_s))

        try:
            r = self.session.get(f"{self.base_url}/api/get", params=params, timeout=self.timeout)
            if r.status_code == 404:
                return None
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise LyricsProviderError(f"LRCLIB request failed: {e}") from e

        if not isinstance(data, dict):
            raise LyricsProviderError(f"Unexpected LRCLIB answer: {data!r}")
        return data

    def get_lyrics(self, title: str, artist: str, album: str | None, duration_s: float | None) -> LyricsResponse:
        data = self.get_by_metadata(title=title, artist=artist, album=album, duration_s=duration_s)
        if data is None:
            logger.info("No lyrics on %s for %s - %s", self.base_url, artist, title)
            return LyricsResponse.not_found()
        return response_from_json(data)

    def get_lyrics_for_track(self, track) -> LyricsResponse:
        return self.get_lyrics(
            title=track.title,
            artist=track.artist_name,
            album=track.album_name,
            duration_s=track.duration,
        )

    def close(self) -> None:
        self.session.close()


def response_from_json(data: dict) -> LyricsResponse:
    synced = norm_text(data.get("syncedLyrics"))
    plain = norm_text(data.get("plainLyrics"))

    if data.get("instrumental") or is_instrumental_lrc(synced):
        return LyricsResponse.instrumental()
    if synced:
        return LyricsResponse.synced_lyrics(synced, plain)
    if plain:
        return LyricsResponse.plain_lyrics(plain)
    return LyricsResponse.not_found()
