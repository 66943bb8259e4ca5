from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from matchcatalog.classification.category import classify_category
from matchcatalog.models.enums import IdentityPolicy
from matchcatalog.models.match import CanonicalMatch
from matchcatalog.models.observation import RawObservation
from matchcatalog.utils.time_utils import (
    SHANGHAI_TZ,
    keyword_to_instant,
    parse_schedule,
)

from .identity import MatchIdentity, derive_identity
from .status import DEFAULT_STATUS_WINDOW, infer_status

# Node name used when an observation has neither a node label nor a title
DEFAULT_NODE_NAME = "主"


class ReconcileResult(BaseModel):
    """Reconciled matches in first-seen order plus the counters the report needs."""

    matches: List[CanonicalMatch] = Field(default_factory=list)
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_source: Dict[str, int] = Field(default_factory=dict)
    rejected: int = 0

    @property
    def total(self) -> int:
        return len(self.matches)


class MatchReconciler:
    """Merges raw observations into one CanonicalMatch per identity key.

    An instance owns its map for a single run and is not thread-safe: feed
    it the complete observation sequence from one thread, then read
    `result()`.
    """

    def __init__(
        self,
        reference_now: datetime,
        policy: IdentityPolicy = IdentityPolicy.DIGEST,
        status_window: timedelta = DEFAULT_STATUS_WINDOW,
    ):
        if reference_now.tzinfo is None:
            # Naive instants are taken as Beijing wall-clock time
            reference_now = reference_now.replace(tzinfo=SHANGHAI_TZ)
        self.reference_now = reference_now
        self.policy = IdentityPolicy(policy)
        self.status_window = status_window
        self._matches: Dict[str, CanonicalMatch] = {}
        self._rejected = 0

    def reconcile(self, observations: Iterable[RawObservation]) -> ReconcileResult:
        count = 0
        for observation in observations:
            self.merge(observation)
            count += 1
        result = self.result()
        logger.info(
            f"Reconciled {count} observations into {result.total} matches "
            f"({result.rejected} rejected, policy={self.policy.value})."
        )
        return result

    def merge(self, observation: RawObservation) -> Optional[CanonicalMatch]:
        """Merges one observation. Returns the match it landed in, or None if rejected."""
        identity = derive_identity(observation, self.policy)
        if identity is None:
            self._rejected += 1
            logger.debug(f"Rejected unidentifiable observation from {observation.source.value}")
            return None

        match = self._matches.get(identity.key)
        if match is None:
            match = self._create_match(identity, observation)
            self._matches[identity.key] = match
            logger.debug(f"New match {match.match_id}: {match.keyword} {match.competition_name} {match.title}")
        else:
            self._fill_missing_fields(match, observation)

        match.add_source(observation.source)
        if observation.url:
            node_name = observation.node_name.strip() or match.title or DEFAULT_NODE_NAME
            match.merge_node(node_name, observation.url)
        return match

    def result(self) -> ReconcileResult:
        matches = list(self._matches.values())
        by_category = Counter(match.category for match in matches if match.category)
        by_source = Counter(source.value for match in matches for source in match.sources)
        return ReconcileResult(
            matches=matches,
            by_category=dict(by_category),
            by_source=dict(by_source),
            rejected=self._rejected,
        )

    def _create_match(self, identity: MatchIdentity, observation: RawObservation) -> CanonicalMatch:
        title = observation.title.strip()
        return CanonicalMatch(
            identity_key=identity.key,
            match_id=identity.match_id,
            keyword=identity.keyword,
            competition_name=observation.competition_name.strip(),
            title=title,
            teams=observation.teams.strip() or (title if "vs" in title else ""),
            category=classify_category(observation.competition_name),
            status=observation.status or self._infer_status(identity.keyword, observation),
            cover=observation.cover,
            score=observation.score,
        )

    def _infer_status(self, keyword: str, observation: RawObservation):
        scheduled = keyword_to_instant(keyword, self.reference_now)
        end = parse_schedule(observation.end_time, self.reference_now) if observation.end_time else None
        return infer_status(scheduled, self.reference_now, self.status_window, end)

    @staticmethod
    def _fill_missing_fields(match: CanonicalMatch, observation: RawObservation) -> None:
        # Populated scalars are first-writer-wins; only blanks are filled in
        if not match.cover and observation.cover:
            match.cover = observation.cover
        if not match.teams and observation.teams.strip():
            match.teams = observation.teams.strip()
        if not match.score and observation.score:
            match.score = observation.score


def reconcile(
    observations: Iterable[RawObservation],
    reference_now: datetime,
    policy: IdentityPolicy = IdentityPolicy.DIGEST,
    status_window: timedelta = DEFAULT_STATUS_WINDOW,
) -> ReconcileResult:
    """One-shot helper: builds a reconciler for this run and returns its result."""
    return MatchReconciler(reference_now, policy, status_window).reconcile(observations)
