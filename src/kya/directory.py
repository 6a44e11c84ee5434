"""
kya.directory — Read-only view of the agent registry.

Registration and score updates belong to the registry service; commitment
issuance only needs consistent snapshots by id, plus listing and search for
the public API.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from kya.errors import AgentNotFound
from kya.models import AgentSnapshot
from kya.tiers import Tier, best_tier


class AgentDirectory(ABC):
    """Where agent snapshots come from."""

    @abstractmethod
    def get(self, agent_id: str) -> Optional[AgentSnapshot]: ...

    @abstractmethod
    def list(self, limit: int = 50, offset: int = 0) -> list[AgentSnapshot]: ...

    @abstractmethod
    def count(self) -> int: ...

    def all(self) -> list[AgentSnapshot]:
        return self.list(limit=self.count(), offset=0)

    def require(self, agent_id: str) -> AgentSnapshot:
        """Like get(), but raises AgentNotFound."""
        agent = self.get(agent_id)
        if agent is None:
            raise AgentNotFound(f"Agent '{agent_id}' not found")
        return agent

    def search(self, tier: Optional[Tier] = None, min_score: Optional[int] = None,
               capability: Optional[str] = None, limit: int = 100) -> list[AgentSnapshot]:
        """Filter every agent by exact tier, minimum score and capability substring.

        `limit` caps the matches returned, not the agents scanned.
        """
        agents = self.all()
        if tier is not None:
            agents = [a for a in agents if a.tier == tier]
        if min_score is not None:
            agents = [a for a in agents if a.reputation_score >= min_score]
        if capability:
            needle = capability.lower()
            agents = [a for a in agents
                      if any(needle in c.lower() for c in a.capabilities)]
        return agents[:limit]

    def highest_tier(self) -> Optional[Tier]:
        return best_tier(a.tier for a in self.all())


class InMemoryAgentDirectory(AgentDirectory):
    """Dict-backed directory, seeded in code or from a JSON file."""

    def __init__(self, agents: Iterable[AgentSnapshot] = ()):
        self._lock = threading.Lock()
        self._agents: dict[str, AgentSnapshot] = {}
        for agent in agents:
            self.put(agent)

    def put(self, agent: AgentSnapshot) -> None:
        """Replace the snapshot held for agent.id."""
        with self._lock:
            self._agents[agent.id] = agent

    def get(self, agent_id: str) -> Optional[AgentSnapshot]:
        return self._agents.get(agent_id)

    def list(self, limit: int = 50, offset: int = 0) -> list[AgentSnapshot]:
        with self._lock:
            agents = list(self._agents.values())
        return agents[offset:offset + limit]

    def count(self) -> int:
        return len(self._agents)

    def __len__(self) -> int:
        return self.count()

    @classmethod
    def load_json(cls, path: str) -> "InMemoryAgentDirectory":
        """Load a JSON list of agent records ({id, reputation_score, tier, ...})."""
        data = json.loads(Path(path).read_text())
        if isinstance(data, dict):
            data = data.get("agents", [])
        return cls(AgentSnapshot.from_dict(d) for d in data)
