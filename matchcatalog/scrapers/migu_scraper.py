# matchcatalog/scrapers/migu_scraper.py

import asyncio
import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import SourceTag
from matchcatalog.utils.time_utils import SHANGHAI_TZ, parse_schedule
from .base_scraper import BaseScraper, ScraperError

# Headers the portal's Android client sends to the static-cache API
APP_HEADERS = {
    "appVersion": "2600052000",
    "User-Agent": "Dalvik/2.1.0 (Linux; U; Android 9; TAS-AN00 Build/PQ3A.190705.08211809)",
    "terminalId": "android",
    "appCode": "miguvideo_default_android",
    "appType": "3",
    "appId": "miguvideo",
    "Content-Type": "application/json",
}

PAGE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Referer": "https://www.miguvideo.com/p/schedule/",
}

# Node lists are merged in this order; earlier lists win on duplicates
NODE_LIST_ORDER = ("replayList", "liveList", "preList")

# Start of a schedule entry embedded in the portal's HTML
EMBEDDED_ENTRY_PATTERN = re.compile(
    r'\{"name":"(?:[^"\\]|\\.)*"\s*,\s*"pID":"(?:[^"\\]|\\.)*"\s*,\s*"title":"'
)


def collect_nodes(basic_data: Dict[str, Any]) -> List[Dict[str, str]]:
    """Flattens a basic-data response into unique {pID, name} nodes."""
    if not isinstance(basic_data, dict) or basic_data.get("code") != 200:
        return []
    play_lists = (basic_data.get("body") or {}).get("multiPlayList") or {}
    seen = set()
    nodes = []
    for list_name in NODE_LIST_ORDER:
        for item in play_lists.get(list_name) or []:
            if not isinstance(item, dict):
                continue
            node_key = f"{item.get('pID')}|{item.get('name')}"
            if node_key in seen:
                continue
            seen.add(node_key)
            nodes.append({"pID": str(item.get("pID") or ""), "name": item.get("name") or ""})
    return nodes


def extract_embedded_matches(html: str, competition_name: str) -> List[Dict[str, Any]]:
    """Pulls the schedule objects of one competition out of a portal page."""
    decoder = json.JSONDecoder()
    entries = []
    for found in EMBEDDED_ENTRY_PATTERN.finditer(html):
        try:
            entry, _ = decoder.raw_decode(html, found.start())
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable embedded entry at offset {found.start()}")
            continue
        if isinstance(entry, dict) and entry.get("competitionName") == competition_name:
            entries.append(entry)
    return entries


class MiguScraper(BaseScraper):
    """Fetches the portal's day-keyed match list and each match's node list."""

    source: SourceTag = SourceTag.MIGU

    def __init__(self, reference_now: datetime, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.reference_now = reference_now.astimezone(SHANGHAI_TZ)

    @property
    def today_key(self) -> str:
        return self.reference_now.strftime("%Y%m%d")

    async def fetch(self) -> List[Dict[str, Any]]:
        logger.info(f"Fetching match list from {self.source.value}")
        payload = await self._get_json(settings.migu_match_list_url)
        match_list = ((payload or {}).get("body") or {}).get("matchList")
        if not isinstance(match_list, dict):
            raise ScraperError("Match list response has no body.matchList mapping")

        if settings.migu_today_only:
            day_keys = [self.today_key] if self.today_key in match_list else []
            if not day_keys:
                logger.info(f"No matches listed for today ({self.today_key})")
        else:
            day_keys = sorted(match_list)

        matches = [m for day in day_keys for m in match_list.get(day) or [] if isinstance(m, dict)]
        logger.info(f"Found {len(matches)} matches on {len(day_keys)} day(s)")
        return await self._attach_nodes(matches)

    async def fetch_nodes(self, mgdb_id: str) -> List[Dict[str, str]]:
        """Node list of one match; an unreachable match simply has no nodes."""
        url = settings.migu_basic_data_url.format(mgdb_id=mgdb_id)
        try:
            basic_data = await self._get_json(url, headers=APP_HEADERS)
        except ScraperError as e:
            logger.error(f"Failed to fetch nodes for match {mgdb_id}: {e}")
            return []
        return collect_nodes(basic_data)

    async def _attach_nodes(self, matches: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        results = []
        for index, match in enumerate(matches):
            mgdb_id = str(match.get("mgdbId") or "")
            nodes = await self.fetch_nodes(mgdb_id) if mgdb_id else []
            logger.debug(f"Match {mgdb_id}: {len(nodes)} node(s)")
            results.append({"match": match, "nodes": nodes})
            if index < len(matches) - 1 and settings.migu_request_delay:
                await asyncio.sleep(settings.migu_request_delay)
        return results


class MiguEmbeddedScraper(MiguScraper):
    """Reads schedule entries embedded in portal HTML pages (e.g. 全运会)."""

    source: SourceTag = SourceTag.MIGU_EMBEDDED

    def __init__(
        self,
        reference_now: datetime,
        pages: Optional[List[str]] = None,
        competition_name: Optional[str] = None,
        *args,
        **kwargs,
    ):
        super().__init__(reference_now, *args, **kwargs)
        self.pages = pages if pages is not None else list(settings.migu_embedded_pages)
        self.competition_name = competition_name or settings.migu_embedded_competition

    async def fetch(self) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        for page in self.pages:
            try:
                html = await self._get_text(page, headers=PAGE_HEADERS)
            except ScraperError as e:
                logger.error(f"Failed to fetch embedded schedule page {page}: {e}")
                continue
            found = extract_embedded_matches(html, self.competition_name)
            logger.info(f"Found {len(found)} {self.competition_name} entries on {page}")
            entries.extend(found)

        todays = self._unique_todays_entries(entries)
        logger.info(f"{len(todays)} unique {self.competition_name} matches today")
        return await self._attach_nodes(todays)

    def _unique_todays_entries(self, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        seen_ids = set()
        todays = []
        for entry in entries:
            pid = str(entry.get("pID") or "")
            if not pid or pid in seen_ids:
                continue
            start = parse_schedule(str(entry.get("startTime") or ""), self.reference_now)
            if start is None or start.date() != self.reference_now.date():
                continue
            seen_ids.add(pid)
            # The embedded pID doubles as the match id for node lookups
            todays.append({**entry, "mgdbId": pid})
        return todays
