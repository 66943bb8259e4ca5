# matchcatalog/scrapers/playlist_scraper.py

from typing import List, Optional

from loguru import logger

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import SourceTag
from .base_scraper import BaseScraper, ScraperError


class PlaylistScraper(BaseScraper):
    """Downloads M3U playlists whose channel labels announce scheduled matches."""

    source: SourceTag = SourceTag.PLAYLIST

    def __init__(self, urls: Optional[List[str]] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.urls = urls if urls is not None else list(settings.playlist_urls)

    async def fetch(self) -> List[str]:
        if not self.urls:
            logger.warning("No playlist URLs configured, skipping playlist source.")
            return []

        playlists = []
        for url in self.urls:
            try:
                text = await self._get_text(url)
            except ScraperError as e:
                logger.error(f"Failed to fetch playlist {url}: {e}")
                continue
            if "#EXTINF" not in text:
                logger.warning(f"Playlist {url} has no #EXTINF entries, ignoring it.")
                continue
            logger.info(f"Fetched playlist {url} ({len(text)} chars)")
            playlists.append(text)
        return playlists
