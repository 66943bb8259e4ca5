import json
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import MatchStatus, SourceTag
from matchcatalog.models.observation import RawObservation
from matchcatalog.parsing.channel_name import parse_channel_name
from matchcatalog.parsing.m3u import parse_m3u
from matchcatalog.utils.time_utils import instant_from_unix, keyword_from_instant

# Replay definitions tried from best to worst
QUALITY_PRIORITY = ("1080p", "720p", "480p")

REPLAY_NODE_NAME = "回放"


class NormalizationError(Exception):
    """Custom exception for data normalization errors."""

    pass


def select_best_play_url(replay: Dict[str, Any]) -> str:
    """Best-quality MP4 URL of a replay, walking the quality ladder tier by tier."""
    video_info = replay.get("video_info") or {}

    play_urls = (video_info.get("unfold_play_info") or {}).get("play_urls") or []
    for quality in QUALITY_PRIORITY:
        for play_url in play_urls:
            if isinstance(play_url, dict) and play_url.get("definition") == quality:
                url = play_url.get("main") or play_url.get("backup") or ""
                if url:
                    return url

    encrypted = (video_info.get("watermarked_encrypt") or {}).get("json")
    if not encrypted:
        return ""
    try:
        video_list = json.loads(encrypted).get("video_list") or []
    except (ValueError, AttributeError) as e:
        logger.warning(f"Could not decode watermarked_encrypt payload: {e}")
        return ""
    for quality in QUALITY_PRIORITY:
        for video in video_list:
            if not isinstance(video, dict):
                continue
            if (video.get("video_meta") or {}).get("definition") == quality and video.get("main_url"):
                return video["main_url"]
    return ""


def _parse_status(value: Any) -> Optional[MatchStatus]:
    try:
        return MatchStatus(str(value))
    except ValueError:
        return None


class Normalizer:
    """Turns raw payloads from each source into RawObservation records."""

    def __init__(self):
        self._handlers: Dict[SourceTag, Callable[[Any], List[RawObservation]]] = {
            SourceTag.MIGU: self._normalize_migu_data,
            SourceTag.MIGU_EMBEDDED: self._normalize_migu_embedded_data,
            SourceTag.PLAYLIST: self._normalize_playlist_data,
            SourceTag.DOUYIN_REPLAY: self._normalize_douyin_data,
        }
        logger.info("Normalizer initialized.")

    def normalize(self, raw_data_by_source: Dict[SourceTag, List[Any]]) -> List[RawObservation]:
        """Normalizes raw data from every source into one observation sequence.

        Args:
            raw_data_by_source: Raw items keyed by the source that produced them.

        Returns:
            Observations in source order, then in upstream order within a source.
            A source that fails to normalize contributes nothing.
        """
        observations: List[RawObservation] = []
        logger.info(
            f"Starting normalization for sources: {[s.value for s in raw_data_by_source]}"
        )

        for source, raw_items in raw_data_by_source.items():
            if not raw_items:
                logger.warning(f"No raw data received for {source.value}, skipping normalization.")
                continue
            handler = self._handlers.get(source)
            if handler is None:
                logger.warning(f"Normalization not implemented for source: {source.value}")
                continue

            produced = 0
            for raw_item in raw_items:
                try:
                    items = handler(raw_item)
                except NormalizationError as e:
                    logger.error(f"Error normalizing item from {source.value}: {e}")
                    continue
                observations.extend(items)
                produced += len(items)
            logger.info(f"{source.value}: {produced} observations from {len(raw_items)} raw item(s)")

        logger.info(f"Normalization complete. Produced {len(observations)} observations.")
        return observations

    def _portal_observations(
        self,
        source: SourceTag,
        match: Dict[str, Any],
        nodes: Iterable[Dict[str, Any]],
        **overrides: Any,
    ) -> List[RawObservation]:
        mgdb_id = str(match.get("mgdbId") or "")
        fields = dict(
            source=source,
            scheduled_time=str(match.get("startTime") or match.get("keyword") or ""),
            competition_name=match.get("competitionName") or "",
            title=match.get("title") or match.get("pkInfoTitle") or "",
            cover=match.get("padImg") or "",
            status=_parse_status(match.get("matchStatus")),
            external_id=mgdb_id or None,
        )
        fields.update(overrides)

        observations = []
        for node in nodes:
            pid = node.get("pID") or ""
            if not pid:
                continue
            url = settings.migu_node_url_template.format(mgdb_id=mgdb_id, pid=pid)
            observations.append(RawObservation(node_name=node.get("name") or "", url=url, **fields))
        if not observations:
            # Listed before any feed exists: keep the match, without nodes
            observations.append(RawObservation(**fields))
        return observations

    def _normalize_migu_data(self, raw_item: Dict[str, Any]) -> List[RawObservation]:
        match = raw_item.get("match") if isinstance(raw_item, dict) else None
        if not isinstance(match, dict):
            raise NormalizationError(f"Portal item without a match record: {type(raw_item)}")
        return self._portal_observations(SourceTag.MIGU, match, raw_item.get("nodes") or [])

    def _normalize_migu_embedded_data(self, raw_item: Dict[str, Any]) -> List[RawObservation]:
        match = raw_item.get("match") if isinstance(raw_item, dict) else None
        if not isinstance(match, dict):
            raise NormalizationError(f"Embedded item without a match record: {type(raw_item)}")
        return self._portal_observations(
            SourceTag.MIGU_EMBEDDED,
            match,
            raw_item.get("nodes") or [],
            # Status comes from the published start/end window
            status=None,
            end_time=str(match.get("endTime") or ""),
            cover=match.get("padImg") or settings.migu_embedded_cover,
        )

    def _normalize_playlist_data(self, playlist_text: str) -> List[RawObservation]:
        if not isinstance(playlist_text, str):
            raise NormalizationError(f"Expected playlist text, got {type(playlist_text)}")

        observations = []
        skipped = 0
        for entry in parse_m3u(playlist_text):
            parsed = parse_channel_name(entry.label, entry.logo)
            if parsed.is_empty:
                skipped += 1
                continue
            observations.append(
                RawObservation(
                    source=SourceTag.PLAYLIST,
                    scheduled_time=parsed.scheduled_time,
                    competition_name=parsed.competition_name,
                    title=parsed.title,
                    teams=parsed.teams,
                    node_name=parsed.node_name,
                    url=entry.url,
                )
            )
        logger.debug(f"Playlist: {len(observations)} scheduled channels, {skipped} other channels skipped")
        return observations

    def _normalize_douyin_data(self, replay: Dict[str, Any]) -> List[RawObservation]:
        if not isinstance(replay, dict):
            raise NormalizationError(f"Expected replay dict, got {type(replay)}")

        match_data = (replay.get("episode_basic_info") or {}).get("match_data") or {}
        started = instant_from_unix(match_data.get("started_time_unix"))
        if started is not None:
            scheduled_time = keyword_from_instant(started)
        else:
            scheduled_time = str(match_data.get("started_time") or "")

        against = match_data.get("against") or {}
        left, right = against.get("left_name") or "", against.get("right_name") or ""
        teams = f"{left} vs {right}" if left else ""
        score = ""
        if against:
            score = f"{against.get('left_goal', '')} - {against.get('right_goal', '')}"

        cover_urls = (replay.get("cover") or {}).get("url_list") or []
        episode_id = str(replay.get("episode_id") or "")

        return [
            RawObservation(
                source=SourceTag.DOUYIN_REPLAY,
                scheduled_time=scheduled_time,
                competition_name=settings.douyin_competition_name,
                title=teams or replay.get("title") or "",
                teams=teams,
                node_name=REPLAY_NODE_NAME,
                url=select_best_play_url(replay),
                cover=cover_urls[0] if cover_urls else "",
                status=MatchStatus.FINISHED,
                external_id=episode_id or None,
                score=score,
            )
        ]
