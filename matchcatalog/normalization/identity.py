# matchcatalog/normalization/identity.py
from dataclasses import dataclass
from typing import FrozenSet, Optional

from matchcatalog.models.enums import IdentityPolicy, SourceTag
from matchcatalog.models.observation import RawObservation
from matchcatalog.utils.misc_utils import short_digest
from matchcatalog.utils.time_utils import normalize_schedule_text

KEY_SEPARATOR = "|"
ESCAPE = "\\"

# Sources whose external ids are stable enough to be their own identity domain
SELF_IDENTIFIED_SOURCES: FrozenSet[SourceTag] = frozenset({SourceTag.DOUYIN_REPLAY})


@dataclass(frozen=True)
class MatchIdentity:
    key: str  # Key into the reconciler's map, shaped by the policy
    match_id: str  # Display identifier
    keyword: str  # Normalized schedule text


def _escape_field(value: str) -> str:
    return value.replace(ESCAPE, ESCAPE * 2).replace(KEY_SEPARATOR, ESCAPE + KEY_SEPARATOR)


def composite_key(keyword: str, competition_name: str, title: str) -> str:
    """Joins the identifying fields; separators inside a field are escaped."""
    fields = (keyword, competition_name.strip(), title.strip())
    return KEY_SEPARATOR.join(_escape_field(field) for field in fields)


def derive_identity(
    observation: RawObservation, policy: IdentityPolicy
) -> Optional[MatchIdentity]:
    """Computes the identity of an observation, or None if it carries none."""
    if not observation.is_identifiable:
        return None

    keyword = normalize_schedule_text(observation.scheduled_time)
    # Unreadable schedule text identifies nothing on its own
    if not (keyword or observation.competition_name.strip() or observation.title.strip()):
        return None

    if observation.source in SELF_IDENTIFIED_SOURCES and observation.external_id:
        composite = f"{observation.source.value}#{observation.external_id}"
    else:
        composite = composite_key(keyword, observation.competition_name, observation.title)

    digest = short_digest(composite)
    key = digest if policy == IdentityPolicy.DIGEST else composite
    return MatchIdentity(
        key=key,
        match_id=observation.external_id or digest,
        keyword=keyword,
    )
