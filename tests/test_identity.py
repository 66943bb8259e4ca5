import hashlib
import unittest
from datetime import datetime
from pathlib import Path
import sys

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from matchcatalog.models.enums import IdentityPolicy, SourceTag
from matchcatalog.models.observation import RawObservation
from matchcatalog.normalization.identity import derive_identity
from matchcatalog.utils.time_utils import (
    SHANGHAI_TZ,
    keyword_to_instant,
    normalize_schedule_text,
)


def observation(**fields):
    fields.setdefault("source", SourceTag.PLAYLIST)
    return RawObservation(**fields)


class ScheduleNormalizationTests(unittest.TestCase):
    def test_playlist_text_is_zero_padded(self):
        self.assertEqual(normalize_schedule_text("1月5日8:00"), "01月05日08:00")
        self.assertEqual(normalize_schedule_text("11月17日00:45"), "11月17日00:45")

    def test_api_timestamps_are_recomposed(self):
        self.assertEqual(normalize_schedule_text("202511070855"), "11月07日08:55")
        self.assertEqual(normalize_schedule_text("2025-11-07 08:55"), "11月07日08:55")
        self.assertEqual(normalize_schedule_text("20251107085530"), "11月07日08:55")

    def test_unusable_text_is_empty(self):
        self.assertEqual(normalize_schedule_text("未知时间"), "")
        self.assertEqual(normalize_schedule_text(""), "")
        self.assertEqual(normalize_schedule_text(None), "")
        self.assertEqual(normalize_schedule_text("202513400855"), "")

    def test_year_rolls_forward_across_new_year(self):
        reference = datetime(2025, 12, 31, 23, 0, tzinfo=SHANGHAI_TZ)
        instant = keyword_to_instant("01月01日01:00", reference)
        self.assertEqual(instant, datetime(2026, 1, 1, 1, 0, tzinfo=SHANGHAI_TZ))

    def test_year_rolls_back_across_new_year(self):
        reference = datetime(2026, 1, 1, 1, 0, tzinfo=SHANGHAI_TZ)
        instant = keyword_to_instant("12月31日23:00", reference)
        self.assertEqual(instant, datetime(2025, 12, 31, 23, 0, tzinfo=SHANGHAI_TZ))

    def test_leap_day_resolves_to_nearest_leap_year(self):
        reference = datetime(2027, 12, 30, 12, 0, tzinfo=SHANGHAI_TZ)
        instant = keyword_to_instant("02月29日10:00", reference)
        self.assertEqual(instant, datetime(2028, 2, 29, 10, 0, tzinfo=SHANGHAI_TZ))

    def test_invalid_calendar_day_has_no_instant(self):
        reference = datetime(2025, 11, 17, tzinfo=SHANGHAI_TZ)
        self.assertIsNone(keyword_to_instant("02月30日10:00", reference))


class IdentityTests(unittest.TestCase):
    def test_composite_policy_uses_verbatim_key(self):
        identity = derive_identity(
            observation(
                scheduled_time="11月17日00:45",
                competition_name="世欧预",
                title="阿尔巴尼亚vs英格兰",
            ),
            IdentityPolicy.COMPOSITE,
        )
        self.assertEqual(identity.key, "11月17日00:45|世欧预|阿尔巴尼亚vs英格兰")
        self.assertEqual(identity.keyword, "11月17日00:45")

    def test_digest_policy_uses_md5_prefix(self):
        identity = derive_identity(
            observation(
                scheduled_time="11月17日00:45",
                competition_name="世欧预",
                title="阿尔巴尼亚vs英格兰",
            ),
            IdentityPolicy.DIGEST,
        )
        expected = hashlib.md5("11月17日00:45|世欧预|阿尔巴尼亚vs英格兰".encode("utf-8")).hexdigest()[:16]
        self.assertEqual(identity.key, expected)
        self.assertEqual(identity.match_id, expected)
        self.assertEqual(len(identity.key), 16)

    def test_playlist_and_api_schedules_share_a_key(self):
        playlist = observation(scheduled_time="11月7日8:55", competition_name="英超", title="a vs b")
        api = observation(
            source=SourceTag.MIGU,
            scheduled_time="202511070855",
            competition_name="英超",
            title="a vs b",
            external_id="m-1",
        )
        for policy in IdentityPolicy:
            with self.subTest(policy=policy):
                self.assertEqual(
                    derive_identity(playlist, policy).key, derive_identity(api, policy).key
                )

    def test_external_id_is_display_identifier(self):
        identity = derive_identity(
            observation(
                source=SourceTag.MIGU,
                scheduled_time="202511070855",
                competition_name="英超",
                title="a vs b",
                external_id="m-1",
            ),
            IdentityPolicy.DIGEST,
        )
        self.assertEqual(identity.match_id, "m-1")
        self.assertNotEqual(identity.key, "m-1")

    def test_replay_source_is_its_own_identity_domain(self):
        replay = observation(
            source=SourceTag.DOUYIN_REPLAY,
            scheduled_time="11月17日19:35",
            competition_name="CBA",
            title="a vs b",
            external_id="ep-9",
        )
        identity = derive_identity(replay, IdentityPolicy.COMPOSITE)
        self.assertEqual(identity.key, "douyin_replay#ep-9")
        self.assertEqual(identity.match_id, "ep-9")

    def test_separator_inside_fields_does_not_collide(self):
        first = observation(scheduled_time="11月17日00:45", competition_name="A|B", title="C")
        second = observation(scheduled_time="11月17日00:45", competition_name="A", title="B|C")
        for policy in IdentityPolicy:
            with self.subTest(policy=policy):
                self.assertNotEqual(
                    derive_identity(first, policy).key, derive_identity(second, policy).key
                )
        self.assertEqual(
            derive_identity(first, IdentityPolicy.COMPOSITE).key, "11月17日00:45|A\\|B|C"
        )

    def test_observation_without_identifying_fields_is_rejected(self):
        self.assertIsNone(derive_identity(observation(url="http://x"), IdentityPolicy.DIGEST))
        self.assertIsNone(
            derive_identity(observation(scheduled_time="未知时间"), IdentityPolicy.DIGEST)
        )


if __name__ == "__main__":
    unittest.main()
