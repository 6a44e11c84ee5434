"""Tests for kya.models."""

import pytest

from kya.commitment import issue_commitment
from kya.models import AgentSnapshot, Commitment, EvmCommitment
from kya.tiers import Tier


def test_snapshot_coerces():
    agent = AgentSnapshot(id="x", reputation_score=10, tier="VERIFIED", capabilities=["a", "b"])
    assert agent.tier is Tier.VERIFIED
    assert agent.capabilities == ("a", "b")


def test_snapshot_score_range():
    with pytest.raises(ValueError):
        AgentSnapshot(id="x", reputation_score=1001, tier=Tier.PLATINUM)


def test_snapshot_is_immutable(gold_agent):
    with pytest.raises(AttributeError):
        gold_agent.reputation_score = 1000


def test_snapshot_dict(gold_agent):
    d = gold_agent.to_dict()
    assert d == {
        "id": "a1",
        "name": "Alpha",
        "reputation_score": 750,
        "tier": "GOLD",
        "capabilities": ["code-review", "Data-Analysis"],
    }
    assert AgentSnapshot.from_dict(d) == gold_agent


def test_snapshot_from_dict_score_alias():
    agent = AgentSnapshot.from_dict({"id": "x", "score": 510})
    assert agent.reputation_score == 510
    assert agent.tier is Tier.GOLD


def test_commitment_wire_shape(gold_agent, fixed_now):
    c = issue_commitment(gold_agent, "test-secret", now=fixed_now)
    assert c.payload_data() == {
        "agent_id": "a1",
        "score": 750,
        "tier": "GOLD",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "expires_at": "2024-01-01T01:00:00.000Z",
    }
    assert Commitment.from_dict(c.to_dict()) == c


def test_evm_commitment_defaults():
    c = EvmCommitment.from_dict({
        "agent_id": "a1", "score": 750, "tier": 2, "timestamp": 1, "expires_at": 3601,
        "signature": "0x00",
    })
    assert c.tier is Tier.GOLD
    assert c.verifier_address == "Not deployed yet"
    assert c.chain == "base_sepolia"
    assert c.oracle_address == ""
