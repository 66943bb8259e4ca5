# matchcatalog/parsing/channel_name.py
"""Decomposes playlist channel labels into schedule, competition, title and node.

Every playlist provider publishes its labels in one fixed grammar, and the
provider is recognised by the file name of the channel's ``tvg-logo``:

    爱奇艺体育.png   11月17日00:45世欧预_阿尔巴尼亚vs英格兰
    腾讯体育.png     11月19日08:00_NBA常规赛_勇士vs魔术 柯凡 殳海 炼炼

Labels that match no grammar produce an all-empty result; callers treat
those rows as non-matches.
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from matchcatalog.utils.time_utils import normalize_schedule_text

# A trailing segment longer than this is part of the title, not a node label
MAX_NODE_LABEL_LENGTH = 20

_DATETIME = r"(\d{1,2}月\d{1,2}日\d{1,2}:\d{2})"
IQIYI_PATTERN = re.compile(rf"^{_DATETIME}([^_]+)_(.+)$")
TENCENT_PATTERN = re.compile(rf"^{_DATETIME}_([^_]+)_([^ ]+)(?: (.+))?$")


@dataclass(frozen=True)
class ParsedChannelName:
    scheduled_time: str = ""
    competition_name: str = ""
    title: str = ""
    teams: str = ""
    node_name: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.scheduled_time or self.competition_name or self.title)


EMPTY_RESULT = ParsedChannelName()


def logo_key(logo: Optional[str]) -> str:
    """Last path segment of a logo URL ('.../腾讯体育.png' -> '腾讯体育.png')."""
    if not logo:
        return ""
    return logo.strip().rstrip("/").split("/")[-1].split("?")[0]


def is_node_label(segment: str) -> bool:
    """A trailing segment is a node label only if it cannot be a fixture itself."""
    segment = segment.strip()
    return bool(segment) and "vs" not in segment.lower() and len(segment) <= MAX_NODE_LABEL_LENGTH


def split_node_label(content: str, trailing: Optional[str] = None) -> Tuple[str, str]:
    """Returns (title, node_name) for a title segment with an optional trailing label."""
    content = content.strip()
    if trailing is None:
        head, sep, tail = content.partition(" ")
        if not sep:
            return content, ""
        content, trailing = head, tail
    trailing = trailing.strip()
    if is_node_label(trailing):
        return content, trailing
    if not trailing:
        return content, ""
    return f"{content} {trailing}", ""


def _build(datetime_text: str, competition: str, title: str, node_name: str) -> ParsedChannelName:
    title = title.strip()
    return ParsedChannelName(
        scheduled_time=normalize_schedule_text(datetime_text),
        competition_name=competition.strip(),
        title=title,
        teams=title if "vs" in title else "",
        node_name=node_name,
    )


def _parse_iqiyi(label: str) -> ParsedChannelName:
    match = IQIYI_PATTERN.match(label)
    if not match:
        return EMPTY_RESULT
    content = match.group(3).strip()
    # Only a fixture title ("A vs B") can be followed by a node label
    if "vs" in content.partition(" ")[0].lower():
        title, node_name = split_node_label(content)
    else:
        title, node_name = content, ""
    return _build(match.group(1), match.group(2), title, node_name)


def _parse_tencent(label: str) -> ParsedChannelName:
    match = TENCENT_PATTERN.match(label)
    if not match:
        return EMPTY_RESULT
    title, node_name = split_node_label(match.group(3), match.group(4) or "")
    return _build(match.group(1), match.group(2), title, node_name)


LABEL_GRAMMARS: Dict[str, Callable[[str], ParsedChannelName]] = {
    "爱奇艺体育.png": _parse_iqiyi,
    "腾讯体育.png": _parse_tencent,
}


def parse_channel_name(label: Optional[str], logo: Optional[str]) -> ParsedChannelName:
    grammar = LABEL_GRAMMARS.get(logo_key(logo))
    if grammar is None or not label:
        return EMPTY_RESULT
    parsed = grammar(label.strip())
    # A datetime that fails validation (e.g. "13月40日") voids the whole row
    if not parsed.is_empty and not parsed.scheduled_time:
        return EMPTY_RESULT
    return parsed
