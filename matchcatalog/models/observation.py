from typing import Optional

from pydantic import BaseModel, ConfigDict

from matchcatalog.models.enums import MatchStatus, SourceTag


class RawObservation(BaseModel):
    """One upstream record about a match, as emitted by a single source entry."""

    model_config = ConfigDict(frozen=True)  # Make instances immutable

    source: SourceTag
    scheduled_time: str = ""  # Source-native text, e.g. "11月17日00:45" or "202511170045"
    competition_name: str = ""
    title: str = ""
    teams: str = ""
    node_name: str = ""
    url: str = ""  # Empty when the source lists the match without a feed
    cover: str = ""
    status: Optional[MatchStatus] = None
    external_id: Optional[str] = None
    end_time: str = ""  # Only published by the portal's embedded schedule pages
    score: str = ""

    @property
    def is_identifiable(self) -> bool:
        """False when schedule, competition and title are all empty."""
        return bool(
            self.scheduled_time.strip()
            or self.competition_name.strip()
            or self.title.strip()
        )
