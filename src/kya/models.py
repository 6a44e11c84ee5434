"""
kya.models — Agent snapshots in, commitments out.

AgentSnapshot is owned by the agent directory; this package only reads it.
Commitment and EvmCommitment are immutable once issued.
"""

from __future__ import annotations

from dataclasses import dataclass

from kya.payload import CommitmentPayload, EvmCommitmentPayload, check_score
from kya.tiers import Tier, parse_tier


@dataclass(frozen=True)
class AgentSnapshot:
    """Consistent read of an agent's registry record at issuance time."""
    id: str
    reputation_score: int
    tier: Tier
    capabilities: tuple[str, ...] = ()
    name: str = ""

    def __post_init__(self):
        check_score(self.reputation_score)
        object.__setattr__(self, "tier", parse_tier(self.tier))
        object.__setattr__(self, "capabilities", tuple(self.capabilities))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "reputation_score": self.reputation_score,
            "tier": self.tier.value,
            "capabilities": list(self.capabilities),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AgentSnapshot":
        score = int(data.get("reputation_score", data.get("score", 0)))
        tier = data.get("tier") or Tier.from_score(score)
        return cls(
            id=data["id"],
            reputation_score=score,
            tier=tier,
            capabilities=tuple(data.get("capabilities", ())),
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class Commitment:
    """HMAC-signed attestation of an agent's score and tier."""
    agent_id: str
    score: int
    tier: Tier
    issued_at: str
    expires_at: str
    content_hash: str
    signature: str

    @property
    def payload(self) -> CommitmentPayload:
        return CommitmentPayload(
            agent_id=self.agent_id,
            score=self.score,
            tier=self.tier,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
        )

    def payload_data(self) -> dict:
        """Fields a verifier must resupply, in wire shape."""
        return {
            "agent_id": self.agent_id,
            "score": self.score,
            "tier": self.tier.value,
            "timestamp": self.issued_at,
            "expires_at": self.expires_at,
        }

    def to_dict(self) -> dict:
        return {
            **self.payload_data(),
            "commitment_hash": self.content_hash,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Commitment":
        return cls(
            agent_id=data["agent_id"],
            score=int(data["score"]),
            tier=parse_tier(data["tier"]),
            issued_at=data["timestamp"],
            expires_at=data["expires_at"],
            content_hash=data["commitment_hash"],
            signature=data["signature"],
        )


@dataclass(frozen=True)
class EvmCommitment:
    """ECDSA-signed commitment checkable on-chain with ecrecover."""
    agent_id: str
    score: int
    tier_code: int
    issued_at: int
    expires_at: int
    signature: str
    oracle_address: str
    verifier_address: str = "Not deployed yet"
    chain: str = "base_sepolia"

    @property
    def tier(self) -> Tier:
        return Tier.from_code(self.tier_code)

    @property
    def payload(self) -> EvmCommitmentPayload:
        return EvmCommitmentPayload(
            agent_id=self.agent_id,
            score=self.score,
            tier_code=self.tier_code,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
        )

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "score": self.score,
            "tier": self.tier_code,
            "tier_name": self.tier.value,
            "timestamp": self.issued_at,
            "expires_at": self.expires_at,
            "signature": self.signature,
            "oracle_address": self.oracle_address,
            "verifier_address": self.verifier_address,
            "chain": self.chain,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EvmCommitment":
        return cls(
            agent_id=data["agent_id"],
            score=int(data["score"]),
            tier_code=int(data["tier"]),
            issued_at=int(data["timestamp"]),
            expires_at=int(data["expires_at"]),
            signature=data["signature"],
            oracle_address=data.get("oracle_address", ""),
            verifier_address=data.get("verifier_address", "Not deployed yet"),
            chain=data.get("chain", "base_sepolia"),
        )
