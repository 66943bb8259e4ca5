import json
import unittest
from datetime import datetime
from pathlib import Path
import sys

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from matchcatalog.config.settings import settings
from matchcatalog.models.enums import MatchStatus, SourceTag
from matchcatalog.normalization.normalizer import Normalizer, select_best_play_url
from matchcatalog.utils.time_utils import SHANGHAI_TZ

PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-logo="https://x/logos/腾讯体育.png" group-title="体育",11月19日08:00_NBA常规赛_勇士vs魔术 柯凡 殳海 炼炼
http://stream/1.m3u8
#EXTINF:-1 tvg-logo="https://x/logos/腾讯体育.png" group-title="体育",11月19日08:00_NBA常规赛_勇士vs魔术 英文原音
http://stream/2.m3u8
#EXTINF:-1 tvg-logo="https://x/logos/cctv.png" group-title="央视",CCTV-5
http://stream/cctv5.m3u8
"""


def replay(**video_info):
    return {
        "episode_id": "ep-1",
        "title": "CBA常规赛回放",
        "episode_basic_info": {
            "match_data": {
                "started_time_unix": int(datetime(2025, 11, 17, 19, 35, tzinfo=SHANGHAI_TZ).timestamp()),
                "against": {"left_name": "广东", "right_name": "辽宁", "left_goal": 101, "right_goal": 99},
            }
        },
        "cover": {"url_list": ["http://img/ep-1.jpg"]},
        "video_info": video_info,
    }


class QualityLadderTests(unittest.TestCase):
    def test_highest_definition_wins(self):
        url = select_best_play_url(
            replay(
                unfold_play_info={
                    "play_urls": [
                        {"definition": "720p", "main": "http://v/720.mp4"},
                        {"definition": "1080p", "main": "http://v/1080.mp4"},
                    ]
                }
            )
        )
        self.assertEqual(url, "http://v/1080.mp4")

    def test_falls_back_to_backup_then_lower_tier(self):
        url = select_best_play_url(
            replay(
                unfold_play_info={
                    "play_urls": [
                        {"definition": "1080p", "main": "", "backup": ""},
                        {"definition": "720p", "main": "", "backup": "http://v/720b.mp4"},
                    ]
                }
            )
        )
        self.assertEqual(url, "http://v/720b.mp4")

    def test_watermarked_list_is_last_resort(self):
        encrypted = json.dumps(
            {
                "video_list": [
                    {"video_meta": {"definition": "480p"}, "main_url": "http://v/480.mp4"},
                    {"video_meta": {"definition": "720p"}, "main_url": "http://v/720w.mp4"},
                ]
            }
        )
        url = select_best_play_url(replay(watermarked_encrypt={"json": encrypted}))
        self.assertEqual(url, "http://v/720w.mp4")

    def test_no_playable_url(self):
        self.assertEqual(select_best_play_url(replay()), "")
        self.assertEqual(select_best_play_url(replay(watermarked_encrypt={"json": "{oops"})), "")


class NormalizerTests(unittest.TestCase):
    def setUp(self):
        self.normalizer = Normalizer()

    def test_playlist_rows_become_observations(self):
        observations = self.normalizer.normalize({SourceTag.PLAYLIST: [PLAYLIST]})
        self.assertEqual(len(observations), 2)
        first, second = observations
        self.assertEqual(first.scheduled_time, "11月19日08:00")
        self.assertEqual(first.competition_name, "NBA常规赛")
        self.assertEqual(first.teams, "勇士vs魔术")
        self.assertEqual(first.node_name, "柯凡 殳海 炼炼")
        self.assertEqual(second.node_name, "英文原音")
        self.assertEqual(second.url, "http://stream/2.m3u8")

    def test_portal_match_yields_one_observation_per_node(self):
        item = {
            "match": {
                "mgdbId": "m-1",
                "title": "勇士vs魔术",
                "keyword": "11月19日08:00",
                "competitionName": "NBA常规赛",
                "matchStatus": "1",
                "padImg": "http://img/m-1.jpg",
            },
            "nodes": [{"pID": "p1", "name": "主"}, {"pID": "p2", "name": "粤语"}],
        }
        observations = self.normalizer.normalize({SourceTag.MIGU: [item]})
        self.assertEqual([o.node_name for o in observations], ["主", "粤语"])
        self.assertEqual(
            observations[0].url,
            settings.migu_node_url_template.format(mgdb_id="m-1", pid="p1"),
        )
        self.assertEqual(observations[0].status, MatchStatus.LIVE)
        self.assertEqual(observations[0].external_id, "m-1")
        self.assertEqual(observations[0].cover, "http://img/m-1.jpg")

    def test_portal_match_without_nodes_is_kept(self):
        item = {"match": {"mgdbId": "m-2", "title": "a vs b", "keyword": "11月19日08:00", "competitionName": "英超"}, "nodes": []}
        observations = self.normalizer.normalize({SourceTag.MIGU: [item]})
        self.assertEqual(len(observations), 1)
        self.assertEqual(observations[0].url, "")
        self.assertIsNone(observations[0].status)

    def test_embedded_entry_carries_end_time(self):
        item = {
            "match": {
                "mgdbId": "p9",
                "pID": "p9",
                "title": "男子100米决赛",
                "competitionName": "全运会",
                "startTime": "202511171930",
                "endTime": "202511172030",
                "matchStatus": "2",
            },
            "nodes": [{"pID": "p9", "name": "主"}],
        }
        (obs,) = self.normalizer.normalize({SourceTag.MIGU_EMBEDDED: [item]})
        self.assertEqual(obs.source, SourceTag.MIGU_EMBEDDED)
        self.assertEqual(obs.end_time, "202511172030")
        self.assertIsNone(obs.status)

    def test_replay_becomes_finished_observation(self):
        raw = replay(unfold_play_info={"play_urls": [{"definition": "480p", "main": "http://v/480.mp4"}]})
        (obs,) = self.normalizer.normalize({SourceTag.DOUYIN_REPLAY: [raw]})
        self.assertEqual(obs.scheduled_time, "11月17日19:35")
        self.assertEqual(obs.title, "广东 vs 辽宁")
        self.assertEqual(obs.teams, "广东 vs 辽宁")
        self.assertEqual(obs.score, "101 - 99")
        self.assertEqual(obs.status, MatchStatus.FINISHED)
        self.assertEqual(obs.external_id, "ep-1")
        self.assertEqual(obs.url, "http://v/480.mp4")
        self.assertEqual(obs.cover, "http://img/ep-1.jpg")
        self.assertEqual(obs.competition_name, settings.douyin_competition_name)

    def test_malformed_items_are_skipped(self):
        observations = self.normalizer.normalize(
            {
                SourceTag.MIGU: ["not a dict", {"nodes": []}],
                SourceTag.PLAYLIST: [PLAYLIST, 42],
                SourceTag.DOUYIN_REPLAY: [],
            }
        )
        self.assertEqual(len(observations), 2)
        self.assertTrue(all(o.source == SourceTag.PLAYLIST for o in observations))


if __name__ == "__main__":
    unittest.main()
