# matchcatalog/parsing/m3u.py
import re
from dataclasses import dataclass
from typing import Dict, List

EXTINF_PREFIX = "#EXTINF"
ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)="([^"]*)"')


@dataclass(frozen=True)
class PlaylistEntry:
    label: str
    url: str
    logo: str = ""
    group: str = ""


def parse_extinf(line: str) -> tuple[Dict[str, str], str]:
    """Splits an #EXTINF line into its attributes and the trailing label."""
    header, sep, label = line.partition(",")
    # Attribute values may themselves contain commas; re-split after the last quote
    if header.count('"') % 2 == 1:
        closing = line.rfind('"')
        header, label = line[:closing + 1], line[closing + 1:].lstrip(",")
    elif not sep:
        label = ""
    return dict(ATTRIBUTE_PATTERN.findall(header)), label.strip()


def parse_m3u(text: str) -> List[PlaylistEntry]:
    """Pairs every #EXTINF tag with the URL line that follows it.

    Comment and directive lines between the tag and the URL are skipped; a
    tag that is followed by another tag (or end of file) yields nothing.
    """
    entries: List[PlaylistEntry] = []
    pending = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith(EXTINF_PREFIX):
            pending = parse_extinf(line)
            continue
        if line.startswith("#"):
            continue
        if pending is not None:
            attributes, label = pending
            entries.append(
                PlaylistEntry(
                    label=label,
                    url=line,
                    logo=attributes.get("tvg-logo", ""),
                    group=attributes.get("group-title", ""),
                )
            )
            pending = None
    return entries
