import unittest
from pathlib import Path
from unittest.mock import patch
import sys

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from matchcatalog.config.settings import settings
from matchcatalog.logging.setup import MASK, mask_text, sensitive_data_filter


class SensitiveDataTests(unittest.TestCase):
    def test_signed_query_parameters_are_masked(self):
        text = mask_text("GET https://x/replay_list/?episode_id=1&msToken=abc123&a_bogus=zz%3D&aid=6383")
        self.assertNotIn("abc123", text)
        self.assertNotIn("zz%3D", text)
        self.assertIn(f"msToken={MASK}", text)
        self.assertIn("aid=6383", text)

    def test_configured_secret_is_masked_anywhere(self):
        with patch.object(settings, "douyin_ms_token", "secret-token-value"):
            self.assertEqual(mask_text("token is secret-token-value"), f"token is {MASK}")

    def test_filter_masks_extra_fields(self):
        record = {
            "message": "request msToken=abcdef",
            "extra": {"cookie": "sessionid=0123456789", "episode": "ep-1"},
        }
        self.assertTrue(sensitive_data_filter(record))
        self.assertEqual(record["message"], f"request msToken={MASK}")
        self.assertEqual(record["extra"]["cookie"], "sess****6789")
        self.assertEqual(record["extra"]["episode"], "ep-1")


if __name__ == "__main__":
    unittest.main()
