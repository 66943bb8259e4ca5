from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .enums import MatchStatus, SourceTag


class Node(BaseModel):
    """A named alternate feed (commentary, camera, quality tier) of a match."""

    name: str
    urls: List[str] = []

    def add_url(self, url: str) -> bool:
        """Appends a URL unless already present. Returns True if it was added."""
        if not url or url in self.urls:
            return False
        self.urls.append(url)
        return True


class CanonicalMatch(BaseModel):
    """Represents one reconciled fixture with all of its feeds."""

    identity_key: str
    match_id: str  # Source-provided id when available, otherwise the derived digest
    keyword: str = ""  # Canonical schedule text, "MM月DD日HH:MM"
    competition_name: str = ""
    title: str = ""
    teams: str = ""
    category: str = ""
    status: MatchStatus = MatchStatus.NOT_STARTED
    cover: str = ""
    score: str = ""
    sources: List[SourceTag] = Field(default_factory=list)
    nodes: List[Node] = Field(default_factory=list)

    def get_node(self, name: str) -> Optional[Node]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def merge_node(self, name: str, url: str) -> Node:
        """Unions `url` into the node called `name`, creating the node if needed."""
        node = self.get_node(name)
        if node is None:
            node = Node(name=name)
            self.nodes.append(node)
        node.add_url(url)
        return node

    def add_source(self, source: SourceTag) -> None:
        if source not in self.sources:
            self.sources.append(source)

    def to_record(self) -> Dict[str, Any]:
        """Output-shape dict used by the snapshot assembler."""
        return {
            "id": self.match_id,
            "keyword": self.keyword,
            "competitionName": self.competition_name,
            "title": self.title,
            "teams": self.teams,
            "category": self.category,
            "matchStatus": self.status.value,
            "cover": self.cover,
            "score": self.score,
            "sources": [source.value for source in self.sources],
            "nodes": [{"name": node.name, "urls": list(node.urls)} for node in self.nodes],
        }
