# matchcatalog/scrapers/douyin_scraper.py

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import SourceTag
from matchcatalog.utils.time_utils import instant_from_unix
from .base_scraper import BaseScraper

# Query parameters the web client sends with every episode API call
BASE_PARAMS = {
    "device_platform": "webapp",
    "aid": "6383",
    "channel": "",
    "update_version_code": "170400",
    "pc_client_type": "1",
    "support_h265": "0",
    "support_dash": "0",
    "version_code": "170400",
    "version_name": "17.4.0",
    "cookie_enabled": "true",
    "browser_language": "zh-CN",
    "browser_platform": "Win32",
    "browser_name": "Edge",
    "browser_version": "143.0.0.0",
    "platform": "PC",
}

HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Referer": "https://www.douyin.com/",
    "Origin": "https://www.douyin.com",
}

PAGE_SIZE = 10


def replay_date(replay: Dict[str, Any]) -> Optional[date]:
    """Beijing calendar date of a replay's kick-off, when it is published."""
    match_data = ((replay.get("episode_basic_info") or {}).get("match_data")) or {}
    started = instant_from_unix(match_data.get("started_time_unix"))
    return started.date() if started else None


class DouyinReplayScraper(BaseScraper):
    """Collects the replays of the seed episode and of the previous match day."""

    source: SourceTag = SourceTag.DOUYIN_REPLAY

    def __init__(
        self,
        episode_id: Optional[str] = None,
        room_id: Optional[str] = None,
        *args,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.episode_id = episode_id or settings.douyin_episode_id
        self.room_id = room_id or settings.douyin_room_id
        self.owner_user_id = ""
        self.current_date: Optional[date] = None
        self.previous_date: Optional[date] = None

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params = dict(BASE_PARAMS)
        if settings.douyin_ms_token:
            params["msToken"] = settings.douyin_ms_token
        if settings.douyin_a_bogus:
            params["a_bogus"] = settings.douyin_a_bogus
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    async def fetch(self) -> List[Dict[str, Any]]:
        seed_replays = await self.get_replay_list(self.episode_id, self.room_id)
        if not seed_replays:
            logger.warning("Seed episode returned no replays.")
            return []

        first = seed_replays[0]
        self.episode_id = str(first.get("episode_id") or self.episode_id)
        self.room_id = str(first.get("room_id") or self.room_id)
        self.owner_user_id = str(first.get("owner_user_id") or "")
        # Dates are taken from the seed replay, not the host clock
        self.current_date = replay_date(first)
        if self.current_date is None:
            logger.warning("Seed replay has no kick-off time; previous-day paging skipped.")
            return seed_replays
        self.previous_date = self.current_date - timedelta(days=1)

        previous = await self.get_previous_day_replays()
        logger.info(
            f"Collected {len(seed_replays)} current and {len(previous)} previous-day replays"
        )
        return seed_replays + previous

    async def get_replay_list(self, episode_id: str, room_id: str) -> List[Dict[str, Any]]:
        payload = await self._get_json(
            f"{settings.douyin_api_base_url}/replay_list/",
            params=self._params(episode_id=episode_id, room_id=room_id),
            headers=HEADERS,
        )
        all_replay = ((payload or {}).get("data") or {}).get("all_replay") or []
        if not all_replay or not isinstance(all_replay[0], dict):
            return []
        return [r for r in all_replay[0].get("info_list") or [] if isinstance(r, dict)]

    async def get_previous_day_replays(self) -> List[Dict[str, Any]]:
        replays: List[Dict[str, Any]] = []
        processed_episodes = set()
        cursor = 0

        for page in range(settings.douyin_max_pages):
            payload = await self._get_json(
                f"{settings.douyin_api_base_url}/more_replay/",
                params=self._params(
                    episode_id=self.episode_id,
                    cursor=cursor,
                    page_size=PAGE_SIZE,
                    relation_type=2,
                    season_type=1,
                    room_id=self.room_id,
                    uid=self.owner_user_id,
                    reverse="false",
                ),
                headers=HEADERS,
            )
            data = (payload or {}).get("data") or {}
            info_list = data.get("info_list")
            if not info_list:
                break

            found_previous = False
            for replay in info_list:
                played_on = replay_date(replay) if isinstance(replay, dict) else None
                if played_on is None:
                    continue
                if played_on < self.previous_date:
                    logger.debug(f"Reached replays older than {self.previous_date} on page {page}")
                    return replays
                if played_on != self.previous_date:
                    continue

                episode_id = str(replay.get("episode_id") or "")
                if episode_id in processed_episodes:
                    continue
                processed_episodes.add(episode_id)

                room_id = replay.get("room_id")
                if room_id:
                    replays.extend(await self.get_replay_list(episode_id, str(room_id)))
                else:
                    replays.append(replay)
                found_previous = True

            if found_previous or not data.get("has_more"):
                break
            cursor = data.get("cursor") or 0

        return replays
