"""Tests for kya.directory."""

import json

import pytest

from kya.directory import InMemoryAgentDirectory
from kya.errors import AgentNotFound
from kya.models import AgentSnapshot
from kya.tiers import Tier


@pytest.fixture
def directory(gold_agent, platinum_agent):
    return InMemoryAgentDirectory([
        gold_agent,
        platinum_agent,
        AgentSnapshot(id="b2", reputation_score=300, tier=Tier.VERIFIED,
                      capabilities=("translation",)),
        AgentSnapshot(id="c3", reputation_score=100, tier=Tier.UNVERIFIED),
    ])


def test_get(directory, gold_agent):
    assert directory.get("a1") == gold_agent
    assert directory.get("zz") is None


def test_require_missing(directory):
    with pytest.raises(AgentNotFound) as exc:
        directory.require("zz")
    assert exc.value.status_code == 404


def test_list_paging(directory):
    assert len(directory) == 4
    assert [a.id for a in directory.list(limit=2)] == ["a1", "agent-42"]
    assert [a.id for a in directory.list(limit=2, offset=2)] == ["b2", "c3"]


def test_put_replaces(directory):
    directory.put(AgentSnapshot(id="a1", reputation_score=800, tier=Tier.PLATINUM))
    assert directory.require("a1").tier is Tier.PLATINUM
    assert len(directory) == 4


def test_search_tier(directory):
    assert [a.id for a in directory.search(tier=Tier.GOLD)] == ["a1"]


def test_search_min_score(directory):
    assert {a.id for a in directory.search(min_score=300)} == {"a1", "agent-42", "b2"}


def test_search_capability_case_insensitive(directory):
    assert [a.id for a in directory.search(capability="data-analysis")] == ["a1"]
    assert [a.id for a in directory.search(capability="TRANS")] == ["b2"]


def test_search_combined(directory):
    assert directory.search(tier=Tier.GOLD, min_score=800) == []


def test_count(directory):
    assert directory.count() == 4
    assert InMemoryAgentDirectory().count() == 0


def test_search_scans_past_limit():
    agents = [AgentSnapshot(id=f"n{i}", reputation_score=50, tier=Tier.UNVERIFIED) for i in range(150)]
    agents.append(AgentSnapshot(id="late", reputation_score=900, tier=Tier.PLATINUM))
    d = InMemoryAgentDirectory(agents)
    assert [a.id for a in d.search(tier=Tier.PLATINUM)] == ["late"]
    assert len(d.search(tier=Tier.UNVERIFIED)) == 100
    assert len(d.search(tier=Tier.UNVERIFIED, limit=120)) == 120
    assert d.highest_tier() is Tier.PLATINUM


def test_highest_tier(directory):
    assert directory.highest_tier() is Tier.PLATINUM
    assert InMemoryAgentDirectory().highest_tier() is None


def test_load_json_list(tmp_path):
    path = tmp_path / "agents.json"
    path.write_text(json.dumps([
        {"id": "x", "reputation_score": 600, "tier": "GOLD", "capabilities": ["a"]},
        {"id": "y", "reputation_score": 260},
    ]))
    d = InMemoryAgentDirectory.load_json(str(path))
    assert d.require("x").tier is Tier.GOLD
    # tier derived from score when the record has none
    assert d.require("y").tier is Tier.VERIFIED


def test_load_json_wrapped(tmp_path):
    path = tmp_path / "agents.json"
    path.write_text(json.dumps({"agents": [{"id": "x", "reputation_score": 10, "name": "X"}]}))
    d = InMemoryAgentDirectory.load_json(str(path))
    assert d.require("x").name == "X"
