# matchcatalog/utils/time_utils.py
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

# Upstream schedules are authored in Beijing time; never use the host zone.
SHANGHAI_TZ = timezone(timedelta(hours=8), name="Asia/Shanghai")

PLAYLIST_TIME_PATTERN = re.compile(r"(\d{1,2})月(\d{1,2})日\s*(\d{1,2}):(\d{2})")


def shanghai_now() -> datetime:
    """Wall-clock instant in UTC+8. Only the run entry point should call this."""
    return datetime.now(SHANGHAI_TZ)


def format_update_time(instant: datetime) -> str:
    return instant.astimezone(SHANGHAI_TZ).strftime("%Y-%m-%d %H:%M:%S")


def format_keyword(month: int, day: int, hour: int, minute: int) -> str:
    return f"{month:02d}月{day:02d}日{hour:02d}:{minute:02d}"


def keyword_from_instant(instant: datetime) -> str:
    local = instant.astimezone(SHANGHAI_TZ)
    return format_keyword(local.month, local.day, local.hour, local.minute)


def _digits_to_keyword(text: str) -> str:
    digits = re.sub(r"\D", "", text)
    if not digits:
        return ""
    if len(digits) == 14:
        # YYYYMMDDHHMMSS
        digits = digits[:12]
    # YYYYMMDDHHMM: pad short values on the left, keep the last 12 of long ones
    digits = digits.zfill(12)[-12:]
    month, day = int(digits[4:6]), int(digits[6:8])
    hour, minute = int(digits[8:10]), int(digits[10:12])
    if not (1 <= month <= 12 and 1 <= day <= 31 and hour <= 23 and minute <= 59):
        return ""
    return format_keyword(month, day, hour, minute)


def normalize_schedule_text(text: Optional[str]) -> str:
    """Normalizes a source-native schedule string to "MM月DD日HH:MM".

    Accepts playlist-style text (``11月7日8:55``, padded or not) and
    API-style timestamps (``202511070855``, ``2025-11-07 08:55``). Returns an
    empty string when nothing usable is found.
    """
    if not text:
        return ""
    text = text.strip()
    match = PLAYLIST_TIME_PATTERN.search(text)
    if match:
        month, day, hour, minute = (int(part) for part in match.groups())
        if not (1 <= month <= 12 and 1 <= day <= 31 and hour <= 23 and minute <= 59):
            return ""
        return format_keyword(month, day, hour, minute)
    return _digits_to_keyword(text)


def keyword_to_instant(keyword: str, reference_now: datetime) -> Optional[datetime]:
    """Resolves a canonical keyword to an aware UTC+8 instant.

    The keyword carries no year: of the previous, current and next year,
    the candidate closest to the reference instant wins.
    """
    match = PLAYLIST_TIME_PATTERN.fullmatch(keyword or "")
    if not match:
        return None
    month, day, hour, minute = (int(part) for part in match.groups())
    reference = reference_now.astimezone(SHANGHAI_TZ)
    candidates = []
    for year in (reference.year - 1, reference.year, reference.year + 1):
        try:
            candidates.append(datetime(year, month, day, hour, minute, tzinfo=SHANGHAI_TZ))
        except ValueError:
            # 29 Feb outside a leap year, or an impossible day
            continue
    if not candidates:
        return None
    return min(candidates, key=lambda instant: abs(instant - reference))


def parse_schedule(text: Optional[str], reference_now: datetime) -> Optional[datetime]:
    """Source-native schedule text to an aware instant, or None."""
    return keyword_to_instant(normalize_schedule_text(text), reference_now)


def instant_from_unix(seconds: Any) -> Optional[datetime]:
    if seconds in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(float(seconds), tz=SHANGHAI_TZ)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
